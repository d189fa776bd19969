"""
Stale marker cleaner — delete files by name suffix under one tree.
"""

from __future__ import annotations

from pathlib import Path

from wureset.adapters.registry import AdapterRegistry
from wureset.core.context import RunContext
from wureset.core.models.action import Action, Receipt


def clean_markers(
    root_dir: Path,
    suffix: str,
    registry: AdapterRegistry,
    ctx: RunContext,
) -> list[Receipt]:
    """Delete every file under ``root_dir`` whose name ends with ``suffix``.

    The first receipt is the enumeration; one receipt per deletion
    follows. A failed enumeration (e.g. missing root) is reported and
    nothing else happens.
    """
    ctx.info(f"Looking for *{suffix} under {root_dir}")
    find = registry.execute_action(
        Action(
            id=f"{ctx.run_id}:markers:find",
            name=f"find *{suffix} under {root_dir}",
            adapter="filesystem",
            params={"operation": "find", "path": str(root_dir), "suffix": suffix},
            read_only=True,
            target=str(root_dir),
        )
    )
    receipts = [find]
    if find.failed:
        ctx.error(f"  ✗ Cannot enumerate {root_dir}: {find.error}")
        return receipts

    matches: list[str] = find.metadata.get("matches", [])
    ctx.info(f"  {len(matches)} marker file(s) found")

    for index, path in enumerate(matches):
        ctx.info(f"  → delete {path}")
        receipt = registry.execute_action(
            Action(
                id=f"{ctx.run_id}:markers:delete:{index}",
                name=f"delete {path}",
                adapter="filesystem",
                params={"operation": "delete_file", "path": path},
                target=path,
            )
        )
        receipts.append(receipt)
        if receipt.ok:
            ctx.info(f"  ✓ {receipt.output}")
        elif receipt.failed:
            ctx.error(f"  ✗ Cannot delete {path}: {receipt.error}")
    return receipts
