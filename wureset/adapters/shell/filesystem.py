"""
Filesystem adapter: the rename/remove/find primitives rotation and
marker cleanup are built from.

No operation trusts an earlier look at the disk. Each one re-checks its
paths right before touching them, because the update agent (or anyone
else) may recreate or delete a directory between two rotation steps.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Any

from wureset.adapters.base import Adapter, ExecutionContext
from wureset.core.errors import TransientIOError
from wureset.core.models.action import Receipt

logger = logging.getLogger(__name__)

# operation → params it cannot run without
_REQUIRED = {
    "exists": ("path",),
    "remove": ("path",),
    "delete_file": ("path",),
    "rename": ("source", "target"),
    "find": ("path", "suffix"),
}


def path_occupied(path: Path) -> bool:
    """Anything at all at ``path``, dangling symlinks included."""
    return os.path.lexists(path)


def _is_real_dir(path: Path) -> bool:
    return path.is_dir() and not path.is_symlink()


class FilesystemAdapter(Adapter):
    """Local disk operations, answered with receipts.

    Params by ``operation``:

    - ``exists``: ``path``
    - ``remove``: ``path`` (file or whole tree)
    - ``delete_file``: ``path`` (refuses directories)
    - ``rename``: ``source``, ``target`` (refuses an occupied target)
    - ``find``: ``path``, ``suffix`` (recursive, files only)
    """

    @property
    def name(self) -> str:
        return "filesystem"

    def is_available(self) -> bool:
        return True

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        params = context.action.params
        operation = params.get("operation")
        if not operation:
            return False, "Missing required param: 'operation'"
        if operation not in _REQUIRED:
            return False, f"Unknown operation '{operation}'. Valid: {', '.join(sorted(_REQUIRED))}"
        missing = [key for key in _REQUIRED[operation] if not params.get(key)]
        if missing:
            return False, f"Missing required param: '{missing[0]}'"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.action.params["operation"]
        if operation not in _REQUIRED:
            return self._fail(context, f"Unknown operation: {operation}")
        handler = getattr(self, f"_{operation}")
        try:
            return handler(context)
        except TransientIOError as e:
            return Receipt.from_exception(
                self.name, context.action.id, e, metadata={"operation": operation}
            )
        except OSError as e:
            wrapped = TransientIOError(f"Filesystem error: {e}")
            return Receipt.from_exception(
                self.name, context.action.id, wrapped, metadata={"operation": operation}
            )

    # ── Receipt shorthands ──────────────────────────────────────

    def _ok(self, ctx: ExecutionContext, output: str, **metadata: Any) -> Receipt:
        return Receipt.success(self.name, ctx.action.id, output, metadata=metadata)

    def _skip(self, ctx: ExecutionContext, reason: str, **metadata: Any) -> Receipt:
        return Receipt.skip(self.name, ctx.action.id, reason, metadata=metadata)

    def _fail(
        self,
        ctx: ExecutionContext,
        error: str,
        error_class: str | None = None,
        **metadata: Any,
    ) -> Receipt:
        return Receipt.failure(
            self.name, ctx.action.id, error, error_class=error_class, metadata=metadata
        )

    # ── Operations ──────────────────────────────────────────────

    def _exists(self, ctx: ExecutionContext) -> Receipt:
        path = Path(ctx.params["path"])
        present = path_occupied(path)
        return self._ok(
            ctx, str(present), path=str(path), exists=present, is_dir=present and path.is_dir()
        )

    def _remove(self, ctx: ExecutionContext) -> Receipt:
        path = Path(ctx.params["path"])
        if not path_occupied(path):
            return self._skip(ctx, f"Nothing to remove at {path}", path=str(path))

        kind = "directory" if _is_real_dir(path) else "file"
        try:
            if kind == "directory":
                shutil.rmtree(path)
            else:
                path.unlink()
        except OSError as e:
            raise TransientIOError(f"Cannot remove {path}: {e}") from e
        return self._ok(ctx, f"Removed {kind} {path}", path=str(path), kind=kind)

    def _delete_file(self, ctx: ExecutionContext) -> Receipt:
        path = Path(ctx.params["path"])
        if not path_occupied(path):
            return self._skip(ctx, f"Already gone: {path}", path=str(path))
        if _is_real_dir(path):
            return self._fail(ctx, f"Refusing to delete directory as a file: {path}", path=str(path))
        try:
            path.unlink()
        except OSError as e:
            raise TransientIOError(f"Cannot delete {path}: {e}") from e
        return self._ok(ctx, f"Deleted {path}", path=str(path))

    def _rename(self, ctx: ExecutionContext) -> Receipt:
        source = Path(ctx.params["source"])
        target = Path(ctx.params["target"])
        where = {"source": str(source), "target": str(target)}

        if not path_occupied(source):
            return self._skip(ctx, f"Nothing at {source}", **where)
        if path_occupied(target):
            return self._fail(
                ctx,
                f"Rename target already exists: {target}",
                TransientIOError.__name__,
                **where,
            )
        try:
            os.rename(source, target)
        except OSError as e:
            raise TransientIOError(f"Cannot rename {source} -> {target}: {e}") from e
        return self._ok(ctx, f"Renamed {source} -> {target}", **where)

    def _find(self, ctx: ExecutionContext) -> Receipt:
        """Files below ``path`` whose name ends with ``suffix``, sorted."""
        root = Path(ctx.params["path"])
        suffix = ctx.params["suffix"]
        if not root.is_dir():
            return self._fail(
                ctx, f"Not a directory: {root}", TransientIOError.__name__, path=str(root)
            )

        unreadable: list[str] = []
        matches = sorted(
            os.path.join(dirpath, filename)
            for dirpath, _dirs, filenames in os.walk(root, onerror=lambda e: unreadable.append(str(e)))
            for filename in filenames
            if filename.endswith(suffix)
        )
        if unreadable:
            logger.warning("Enumeration of %s was incomplete: %s", root, "; ".join(unreadable))

        return self._ok(
            ctx,
            "\n".join(matches),
            path=str(root),
            suffix=suffix,
            matches=matches,
            count=len(matches),
            walk_errors=unreadable,
        )
