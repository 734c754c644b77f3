"""
Visualize a Merkle tree.

Generates a level-order text rendering of a tree, showing the structure and
the digests of its nodes. This can be useful for debugging and for
understanding how the odd-node policy shapes a tree.
"""

import re

from merkletree.core.merkle import MerkleTree, Node

ANSI_ESCAPE = re.compile(r'\x1b\[[0-9;]*[mK]')


# ANSI color codes for terminal output
class Colors:
    HEADER = '\033[95m'
    OKBLUE = '\033[94m'
    OKCYAN = '\033[96m'
    OKGREEN = '\033[92m'
    WARNING = '\033[93m'
    FAIL = '\033[91m'
    ENDC = '\033[0m'
    BOLD = '\033[1m'
    UNDERLINE = '\033[4m'


def strip_colors(text: str) -> str:
    """Remove ANSI color codes from rendered output."""
    return ANSI_ESCAPE.sub('', text)


class MerkleTreeVisualizer:
    """Renders a Merkle tree level by level, root first."""

    def __init__(self, max_depth: int = 4, hash_length: int = 8):
        """
        Args:
            max_depth: Number of levels below the root to render.
            hash_length: Number of hex characters shown per digest.
        """
        self.max_depth = max_depth
        self.hash_length = hash_length

    def visualize_tree(self, tree: MerkleTree) -> str:
        """
        Generate a text-based visualization of the Merkle tree.

        Args:
            tree: The tree to render.

        Returns:
            A string containing the visualization.
        """
        lines = []

        lines.append(f"{Colors.HEADER}{Colors.BOLD}Merkle Tree Visualization{Colors.ENDC}")
        lines.append(f"Size: {tree.leaf_count} leaves")
        lines.append(f"Height: {tree.height}")
        lines.append(f"Policy: {tree.policy.value}")
        lines.append(f"Hash: {tree.hasher.algorithm}")
        lines.append(f"Root: {tree.root.hex()}")

        lowest = max(tree.height - self.max_depth, 0)
        for level in range(tree.height, lowest - 1, -1):
            if level == tree.height:
                level_name = f"Root (Level {level})"
            elif level == 0:
                level_name = "Leaves (Level 0)"
            else:
                level_name = f"Level {level}"

            lines.append(f"\n{Colors.UNDERLINE}{level_name}{Colors.ENDC}")
            lines.append("  ".join(self._format_node(node) for node in tree.nodes_at_level(level)))

        if lowest > 0:
            lines.append(
                f"\n{Colors.WARNING}Note: Tree truncated at depth {self.max_depth} "
                f"(total height: {tree.height}){Colors.ENDC}"
            )

        return '\n'.join(lines)

    def _format_node(self, node: Node) -> str:
        text = self._short_hash(node.digest.hex())
        if node.level > 0 and node.right is None:
            # Carried up unchanged from the level below
            return f"{Colors.OKCYAN}{text}^{Colors.ENDC}"
        if node.level > 0 and node.right == node.left:
            return f"{Colors.OKBLUE}{text}*{Colors.ENDC}"
        return text

    def _short_hash(self, hash_str: str) -> str:
        """Shorten a hash string for display."""
        length = self.hash_length
        if len(hash_str) <= length + 2:
            return hash_str
        return f"{hash_str[:length//2]}...{hash_str[-length//2:]}"


def render(tree: MerkleTree, max_depth: int = 4, color: bool = True) -> str:
    """Render ``tree`` as text, optionally without color codes."""
    text = MerkleTreeVisualizer(max_depth=max_depth).visualize_tree(tree)
    return text if color else strip_colors(text)


__all__ = ["Colors", "MerkleTreeVisualizer", "render", "strip_colors"]
