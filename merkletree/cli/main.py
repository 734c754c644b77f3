"""
merkletree Command Line Interface

Provides commands for building trees from line-oriented files, generating
inclusion and consistency proofs, and verifying them.
"""

import logging
import sys
from typing import List, Optional

import click
from pydantic import ValidationError

from merkletree.core.config import MerkleSettings
from merkletree.core.consistency import verify_consistency
from merkletree.core.errors import MerkleTreeError
from merkletree.core.hashing import supported_algorithms
from merkletree.core.merkle import MerkleTree
from merkletree.core.models import ConsistencyProof, OddNodePolicy, Proof
from merkletree.core.proofs import verify as verify_inclusion
from merkletree.visualize import render

logger = logging.getLogger(__name__)

# Configure click
CONTEXT_SETTINGS = dict(help_option_names=['-h', '--help'])


# Helper functions
def read_leaves(stream) -> List[bytes]:
    """Read one leaf per line, without the trailing LF or CRLF."""
    return [line.rstrip(b"\r\n") for line in stream]


def build_tree(settings: MerkleSettings, stream) -> MerkleTree:
    """Build a tree from a leaves file, exiting on error."""
    try:
        return settings.build(read_leaves(stream))
    except MerkleTreeError as e:
        click.echo(f"Error building tree: {e}", err=True)
        sys.exit(1)


def parse_digest(value: str, label: str) -> bytes:
    """Decode a hex digest argument, exiting on error."""
    try:
        return bytes.fromhex(value)
    except ValueError:
        click.echo(f"Invalid {label}: expected a hex digest", err=True)
        sys.exit(1)


def write_output(text: str, output: Optional[str]) -> None:
    """Write text to a file, or to stdout when no file is given."""
    if output:
        with open(output, 'w', encoding='utf-8') as f:
            f.write(text + "\n")
        click.echo(f"Proof saved to {output}", err=True)
    else:
        click.echo(text)


# Command group
@click.group(context_settings=CONTEXT_SETTINGS)
@click.option('--hash-algorithm', '-a', default=None,
              type=click.Choice(supported_algorithms(), case_sensitive=False),
              help='Hash algorithm (default: sha256, or MERKLETREE_HASH_ALGORITHM)')
@click.option('--policy', '-p', default=None,
              type=click.Choice([p.value for p in OddNodePolicy]),
              help='Odd-node policy (default: carry-up, or MERKLETREE_ODD_NODE_POLICY)')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx: click.Context, hash_algorithm: Optional[str], policy: Optional[str], verbose: bool):
    """merkletree - build Merkle trees and prove inclusion and consistency."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = MerkleSettings.from_env()
        overrides = {}
        if hash_algorithm:
            overrides['hash_algorithm'] = hash_algorithm
        if policy:
            overrides['odd_node_policy'] = policy
        if overrides:
            settings = MerkleSettings(**{**settings.model_dump(), **overrides})
    except ValidationError as e:
        click.echo(f"Invalid configuration: {e}", err=True)
        sys.exit(1)

    logger.debug("Using settings: %s", settings)
    ctx.obj = settings


@cli.command()
@click.argument('leaves_file', type=click.File('rb'))
@click.pass_obj
def root(settings: MerkleSettings, leaves_file):
    """Print the root digest of the lines of LEAVES_FILE."""
    tree = build_tree(settings, leaves_file)
    click.echo(tree.root.hex())


@cli.command()
@click.argument('leaves_file', type=click.File('rb'))
@click.argument('index', type=int)
@click.option('--output', '-o', help='Output file for the proof (default: stdout)')
@click.pass_obj
def prove(settings: MerkleSettings, leaves_file, index: int, output: Optional[str]):
    """Generate an inclusion proof for line INDEX of LEAVES_FILE."""
    tree = build_tree(settings, leaves_file)
    try:
        proof = tree.get_proof(index)
    except MerkleTreeError as e:
        click.echo(f"Error generating proof: {e}", err=True)
        sys.exit(1)

    click.echo(f"Root: {tree.root.hex()}", err=True)
    write_output(proof.model_dump_json(indent=2), output)


@cli.command()
@click.argument('proof_file', type=click.File('r'))
@click.argument('leaf')
@click.argument('root_hex', metavar='ROOT')
@click.pass_obj
def verify(settings: MerkleSettings, proof_file, leaf: str, root_hex: str):
    """Verify that LEAF is included under ROOT using PROOF_FILE."""
    try:
        proof = Proof.model_validate_json(proof_file.read())
    except ValidationError as e:
        click.echo(f"Error loading proof: {e}", err=True)
        sys.exit(1)

    expected_root = parse_digest(root_hex, "root")
    if verify_inclusion(leaf.encode('utf-8'), proof, expected_root, settings.hasher()):
        click.echo("✅ Inclusion proof is valid")
        sys.exit(0)
    else:
        click.echo("❌ Invalid inclusion proof", err=True)
        sys.exit(1)


@cli.command()
@click.argument('leaves_file', type=click.File('rb'))
@click.argument('old_size', type=int)
@click.option('--output', '-o', help='Output file for the proof (default: stdout)')
@click.pass_obj
def consistency(settings: MerkleSettings, leaves_file, old_size: int, output: Optional[str]):
    """Prove the first OLD_SIZE lines of LEAVES_FILE are a prefix of all of them."""
    tree = build_tree(settings, leaves_file)
    try:
        proof = tree.get_consistency_proof(old_size)
        old_root = tree.root_at(old_size)
    except MerkleTreeError as e:
        click.echo(f"Error generating consistency proof: {e}", err=True)
        sys.exit(1)

    click.echo(f"Old root: {old_root.hex()}", err=True)
    click.echo(f"New root: {tree.root.hex()}", err=True)
    write_output(proof.model_dump_json(indent=2), output)


@cli.command('verify-consistency')
@click.argument('proof_file', type=click.File('r'))
@click.argument('old_root_hex', metavar='OLD_ROOT')
@click.argument('new_root_hex', metavar='NEW_ROOT')
@click.pass_obj
def verify_consistency_command(settings: MerkleSettings, proof_file, old_root_hex: str, new_root_hex: str):
    """Verify that NEW_ROOT extends OLD_ROOT using PROOF_FILE."""
    try:
        proof = ConsistencyProof.model_validate_json(proof_file.read())
    except ValidationError as e:
        click.echo(f"Error loading proof: {e}", err=True)
        sys.exit(1)

    old_root = parse_digest(old_root_hex, "old root")
    new_root = parse_digest(new_root_hex, "new root")
    if verify_consistency(old_root, proof.old_size, new_root, proof.new_size, proof,
                          settings.hasher(), settings.odd_node_policy):
        click.echo("✅ Consistency proof is valid")
        sys.exit(0)
    else:
        click.echo("❌ Invalid consistency proof", err=True)
        sys.exit(1)


@cli.command()
@click.argument('leaves_file', type=click.File('rb'))
@click.option('--max-depth', type=int, default=4, help='Maximum depth to visualize (default: 4)')
@click.option('--no-color', is_flag=True, help='Disable colored output')
@click.pass_obj
def show(settings: MerkleSettings, leaves_file, max_depth: int, no_color: bool):
    """Print a level-order rendering of the tree over LEAVES_FILE."""
    tree = build_tree(settings, leaves_file)
    click.echo(render(tree, max_depth=max_depth, color=not no_color))


def main():
    """Console script entry point."""
    cli()


# Main entry point
if __name__ == '__main__':
    main()
