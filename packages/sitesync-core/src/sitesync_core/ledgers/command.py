"""Ledger adapter that shells out to an external JSON-speaking command.

The command receives a subcommand plus flags as an argument list (never via
a shell) and must print one JSON object on stdout. Results are decoded here,
once, into the tagged ``Created`` / ``Mutated`` / ``Failed`` variants.

Subcommands: ``create-collection``, ``add-resource``, ``update-resource``,
``delete-resource``, ``delete-resources``, ``list-resources`` and ``submit``.
Bulk payloads (paths, mutations) are passed as JSON on stdin.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import subprocess
from collections.abc import Sequence

from pydantic import TypeAdapter, ValidationError

from sitesync_core.errors import LedgerError
from sitesync_core.interfaces.ledger import (
    Created,
    Failed,
    LedgerResult,
    Mutated,
    ResourcePage,
)
from sitesync_core.paths.validator import validate_resource_path
from sitesync_core.publish.models import Mutation

logger = logging.getLogger(__name__)

# Object ids and cursors: no leading dash, so they can't be read as flags.
_ID_RE = re.compile(r"[A-Za-z0-9][A-Za-z0-9_:.\-]*")

_RESULT_ADAPTER: TypeAdapter[Created | Mutated | Failed] = TypeAdapter(LedgerResult)


def _check_id(value: str, what: str) -> str:
    if not _ID_RE.fullmatch(value):
        raise LedgerError("validate", f"invalid {what}: {value!r}")
    return value


class CommandLedger:
    """Runs ``[*command, subcommand, ...flags]`` for every ledger call."""

    def __init__(self, command: Sequence[str], timeout: int = 120) -> None:
        if not command:
            raise ValueError("CommandLedger needs a command to run")
        self.command = list(command)
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Process plumbing
    # ------------------------------------------------------------------

    def _run(self, subcommand: str, args: list[str], stdin: str | None = None) -> dict:
        argv = [*self.command, subcommand, *args]
        try:
            result = subprocess.run(
                argv,
                input=stdin,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise LedgerError(subcommand, f"command not found: {self.command[0]}") from e
        except subprocess.TimeoutExpired as e:
            raise LedgerError(subcommand, f"timed out after {self.timeout}s") from e

        if result.returncode != 0:
            raise LedgerError(
                subcommand,
                f"exited {result.returncode}: {result.stderr.strip()[:200]}",
            )
        try:
            data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise LedgerError(subcommand, f"invalid JSON output: {e}") from e
        if not isinstance(data, dict):
            raise LedgerError(subcommand, "expected a JSON object")
        return data

    async def _call(
        self, subcommand: str, args: list[str], stdin: str | None = None
    ) -> dict:
        return await asyncio.to_thread(self._run, subcommand, args, stdin)

    @staticmethod
    def _decode(subcommand: str, data: dict) -> Created | Mutated | Failed:
        try:
            return _RESULT_ADAPTER.validate_python(data)
        except ValidationError as e:
            raise LedgerError(subcommand, f"unrecognised result: {e}") from e

    async def _mutate(
        self, subcommand: str, args: list[str], stdin: str | None = None
    ) -> Mutated | Failed:
        result = self._decode(subcommand, await self._call(subcommand, args, stdin))
        if isinstance(result, Created):
            raise LedgerError(subcommand, "unexpected 'created' result")
        return result

    @staticmethod
    def _target(capability_id: str, collection_id: str) -> list[str]:
        return [
            "--capability", _check_id(capability_id, "capability id"),
            "--collection", _check_id(collection_id, "collection id"),
        ]

    # ------------------------------------------------------------------
    # Ledger protocol
    # ------------------------------------------------------------------

    async def create_collection(self, name: str) -> Created | Failed:
        result = self._decode(
            "create-collection",
            await self._call("create-collection", ["--name", name]),
        )
        if isinstance(result, Mutated):
            raise LedgerError("create-collection", "unexpected 'mutated' result")
        return result

    async def add_resource(
        self, capability_id: str, collection_id: str, path: str,
        locator: str, hash: str, size: int, content_type: str,
    ) -> Mutated | Failed:
        args = self._target(capability_id, collection_id) + [
            "--path", validate_resource_path(path),
            "--locator", _check_id(locator, "locator"),
            "--hash", hash,
            "--size", str(size),
            "--content-type", content_type,
        ]
        return await self._mutate("add-resource", args)

    async def update_resource(
        self, capability_id: str, collection_id: str, path: str,
        locator: str, hash: str, size: int,
    ) -> Mutated | Failed:
        args = self._target(capability_id, collection_id) + [
            "--path", validate_resource_path(path),
            "--locator", _check_id(locator, "locator"),
            "--hash", hash,
            "--size", str(size),
        ]
        return await self._mutate("update-resource", args)

    async def delete_resource(
        self, capability_id: str, collection_id: str, path: str
    ) -> Mutated | Failed:
        args = self._target(capability_id, collection_id) + [
            "--path", validate_resource_path(path),
        ]
        return await self._mutate("delete-resource", args)

    async def delete_resources(
        self, capability_id: str, collection_id: str, paths: Sequence[str]
    ) -> Mutated | Failed:
        payload = json.dumps({"paths": [validate_resource_path(p) for p in paths]})
        return await self._mutate(
            "delete-resources", self._target(capability_id, collection_id), payload
        )

    async def list_resources(
        self, collection_id: str, cursor: str | None = None, limit: int = 50
    ) -> ResourcePage:
        args = ["--collection", _check_id(collection_id, "collection id"), "--limit", str(limit)]
        if cursor is not None:
            args += ["--cursor", _check_id(cursor, "cursor")]
        data = await self._call("list-resources", args)
        try:
            page = ResourcePage.model_validate(data)
        except ValidationError as e:
            raise LedgerError("list-resources", f"unrecognised page: {e}") from e
        for record in page.resources:
            validate_resource_path(record.path)
        return page

    async def submit(
        self, capability_id: str, collection_id: str, mutations: Sequence[Mutation]
    ) -> Mutated | Failed:
        for m in mutations:
            if hasattr(m, "path"):
                validate_resource_path(m.path)
        payload = json.dumps({"mutations": [m.model_dump(mode="json") for m in mutations]})
        logger.debug("Submitting %d mutation(s) to %s", len(mutations), collection_id)
        return await self._mutate(
            "submit", self._target(capability_id, collection_id), payload
        )
