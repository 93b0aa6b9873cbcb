"""
Store inspection CLI for kvorm.

This tool works directly on the persisted key scheme:
- ids: List the ids in a kind's index
- show: Print a record's primary hash as JSON
- check-index: Report index ids that have no primary key
- repair-index: Remove those ids from the index
- delete: Delete a record with all its keys (needs --module)

Usage:
    kvorm ids person
    kvorm show person 3f2c...
    kvorm check-index person
    kvorm repair-index person --module myapp.models
    kvorm delete person 3f2c... --module myapp.models

Connection settings come from KVORM_* environment variables.

Invariants:
    - check-index never writes
    - Dangling index entries exit non-zero from check-index
    - Without --module, repair-index cannot know auxiliary key names and
      removes index entries only
"""

from __future__ import annotations

import argparse
import asyncio
import importlib
import json
import logging
import sys
from typing import List, Optional

from ..config import get_settings
from ..engine import keys
from ..engine.deletion import DeletionEngine
from ..logging_setup import setup_logging
from ..schema.registry import ModelRegistry
from ..store.base import StoreClient, create_store_client

logger = logging.getLogger(__name__)


class StoreCLI:
    """Store inspection commands over a connected StoreClient.

    Example:
        >>> cli = StoreCLI(client)
        >>> await cli.check_index("person")
        []
    """

    def __init__(self, store: StoreClient, registry: Optional[ModelRegistry] = None) -> None:
        self.store = store
        self.registry = registry

    async def ids(self, kind: str) -> List[str]:
        """Sorted ids in the kind's index."""
        async with self.store.session() as session:
            return sorted(await session.set_members(keys.index_key(kind)))

    async def show(self, kind: str, record_id: str) -> Optional[dict]:
        """The raw primary hash of a record, or None if absent."""
        if not keys.is_valid_id(record_id):
            return None
        async with self.store.session() as session:
            primary = keys.primary_key(kind, record_id)
            if not await session.key_exists(primary):
                return None
            return await session.hash_get_all(primary)

    async def check_index(self, kind: str) -> List[str]:
        """Index ids whose primary key is missing, or that cannot be record ids."""
        dangling = []
        async with self.store.session() as session:
            for record_id in sorted(await session.set_members(keys.index_key(kind))):
                if not keys.is_valid_id(record_id) or not await session.key_exists(
                    keys.primary_key(kind, record_id)
                ):
                    dangling.append(record_id)
        return dangling

    async def repair_index(self, kind: str) -> List[str]:
        """Remove dangling ids from the index (and their auxiliary keys if known).

        Returns:
            The ids that were removed
        """
        dangling = await self.check_index(kind)
        if not dangling:
            return []

        meta = self.registry.find(kind) if self.registry is not None else None
        async with self.store.session() as session:
            for record_id in dangling:
                if meta is not None and keys.is_valid_id(record_id):
                    await session.key_delete(*keys.auxiliary_keys(meta, record_id))
                await session.set_remove(keys.index_key(kind), record_id)
                logger.warning(f"Removed dangling {kind} {record_id} from index")
        return dangling

    async def delete(self, kind: str, record_id: str) -> bool:
        """Delete a record through the deletion engine.

        Raises:
            ValueError: If no registry was supplied
        """
        if self.registry is None:
            raise ValueError("delete requires --module to resolve auxiliary keys")
        engine = DeletionEngine(self.registry)
        async with self.store.session() as session:
            return await engine.delete_by_id(session, kind, record_id)


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point for the store tool."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--module", help="Python module exposing a 'registry' ModelRegistry")

    parser = argparse.ArgumentParser(description="kvorm store inspection tool")
    subparsers = parser.add_subparsers(dest="command", required=True)

    ids_parser = subparsers.add_parser(
        "ids", parents=[common], help="List ids in a kind's index"
    )
    ids_parser.add_argument("kind")

    show_parser = subparsers.add_parser(
        "show", parents=[common], help="Print a record's primary hash"
    )
    show_parser.add_argument("kind")
    show_parser.add_argument("id")

    check_parser = subparsers.add_parser(
        "check-index", parents=[common], help="Report index ids without data"
    )
    check_parser.add_argument("kind")

    repair_parser = subparsers.add_parser(
        "repair-index", parents=[common], help="Remove index ids without data"
    )
    repair_parser.add_argument("kind")

    delete_parser = subparsers.add_parser(
        "delete", parents=[common], help="Delete a record and its keys"
    )
    delete_parser.add_argument("kind")
    delete_parser.add_argument("id")

    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging(settings)
    registry = _load_registry(args.module) if args.module else None

    sys.exit(asyncio.run(_run(args, create_store_client(settings), registry)))


async def _run(
    args: argparse.Namespace, store: StoreClient, registry: Optional[ModelRegistry]
) -> int:
    await store.connect()
    try:
        cli = StoreCLI(store, registry)

        if args.command == "ids":
            for record_id in await cli.ids(args.kind):
                print(record_id)
            return 0

        if args.command == "show":
            data = await cli.show(args.kind, args.id)
            if data is None:
                print(f"{args.kind} {args.id} not found", file=sys.stderr)
                return 1
            print(json.dumps(data, indent=2, sort_keys=True))
            return 0

        if args.command == "check-index":
            dangling = await cli.check_index(args.kind)
            if not dangling:
                print(f"Index for {args.kind} is consistent")
                return 0
            print(f"Index for {args.kind} lists {len(dangling)} id(s) without data:")
            for record_id in dangling:
                print(f"  - {record_id}")
            return 1

        if args.command == "repair-index":
            removed = await cli.repair_index(args.kind)
            print(f"Removed {len(removed)} dangling id(s) from {keys.index_key(args.kind)}")
            return 0

        if args.command == "delete":
            if registry is None:
                print("delete requires --module", file=sys.stderr)
                return 2
            deleted = await cli.delete(args.kind, args.id)
            print("Deleted" if deleted else "Nothing to delete")
            return 0

        return 2
    finally:
        await store.close()


def _load_registry(module_path: str) -> ModelRegistry:
    """Import a module and return its 'registry' attribute.

    Raises:
        ValueError: If the module has no ModelRegistry named 'registry'
    """
    module = importlib.import_module(module_path)
    registry = getattr(module, "registry", None)
    if not isinstance(registry, ModelRegistry):
        raise ValueError(f"Module {module_path} has no 'registry' ModelRegistry")
    return registry


if __name__ == "__main__":
    main()
