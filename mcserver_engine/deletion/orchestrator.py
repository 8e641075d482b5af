# mcserver_engine/deletion/orchestrator.py
"""Deletion orchestrator - best-effort teardown of everything a server owns."""

import logging
from typing import Callable, List, Optional, Tuple

from mcserver_engine.core.adapters import ContainerPlatform, DnsProvider
from mcserver_engine.core.errors import PlatformError, ServerEngineError
from mcserver_engine.core.events import EventEmitter, NullEventEmitter
from mcserver_engine.core.events_model import ServerEvent
from mcserver_engine.core.locks import ServerLockRegistry
from mcserver_engine.core.models import ContainerState, DeletionReport, FileEntry, Server, StepResult
from mcserver_engine.core.repository import ServerRepository
from mcserver_engine.provisioning.layout import ServerLayout

logger = logging.getLogger(__name__)


# Once this step succeeds the server no longer exists for its owner.
POINT_OF_NO_RETURN = "database_record"


class DeletionOrchestrator:
    """
    Ordered, named steps. Every step runs and records a StepResult; a failure
    never aborts the later steps, except that a failed database removal
    stops the teardown (the server still exists and can be deleted again).

        container -> database_record -> dns_record -> files
    """

    def __init__(
        self,
        repository: ServerRepository,
        platform: ContainerPlatform,
        layout: ServerLayout,
        locks: ServerLockRegistry,
        dns: Optional[DnsProvider] = None,
        delete_server_folders: bool = True,
        emitter: Optional[EventEmitter] = None,
        allow_aliases: bool = True,
    ):
        self._repo = repository
        self._platform = platform
        self._layout = layout
        self._locks = locks
        self._dns = dns
        self._delete_server_folders = delete_server_folders
        self._emitter = emitter or NullEventEmitter()
        self._allow_aliases = allow_aliases

    def delete(
        self,
        identifier: str,
        owner: str,
        reason: str = "user",
        force: bool = True,
        remove_volumes: bool = True,
    ) -> DeletionReport:
        server = self._repo.require(owner, identifier, self._allow_aliases)

        with self._locks.hold(server.unique_id, "delete"):
            logger.info(f"[delete] deleting {server.unique_id} (reason={reason}, force={force})")
            report = DeletionReport(unique_id=server.unique_id)

            for name, action in self._steps(server, reason, force, remove_volumes):
                try:
                    detail = action()
                    report.steps.append(StepResult(name=name, ok=True, detail=detail))
                    logger.info(f"[delete] {server.unique_id} {name}: ok ({detail})")
                except ServerEngineError as e:
                    report.steps.append(StepResult(name=name, ok=False, error=str(e)))
                    logger.error(f"[delete] {server.unique_id} {name}: failed: {e}")
                    if name == POINT_OF_NO_RETURN:
                        break

            if report.record_removed:
                self._emitter.emit([ServerEvent.deleted(
                    server, reason, report.partial, [s.name for s in report.failed_steps]
                )])
            return report

    def _steps(self, server: Server, reason: str, force: bool, remove_volumes: bool) -> List[Tuple[str, Callable[[], str]]]:
        return [
            ("container", lambda: self._remove_container(server, force, remove_volumes)),
            (POINT_OF_NO_RETURN, lambda: self._remove_record(server)),
            ("dns_record", lambda: self._remove_dns(server)),
            ("files", lambda: self._remove_files(server, reason)),
        ]

    # -------------------------
    # STEPS
    # -------------------------

    def _remove_container(self, server: Server, force: bool, remove_volumes: bool) -> str:
        environment_id = self._platform.resolve_environment(server.environment_id)
        notes = []

        container = self._platform.find_container_by_name(server.container_name, environment_id)
        if container is None:
            notes.append("container already absent")
        else:
            if container.state == ContainerState.RUNNING and not force:
                self._platform.stop(container.id, environment_id)
                notes.append("stopped")
            self._platform.remove_container(container.id, environment_id, force=True, volumes=remove_volumes)
            notes.append("removed")

        for stack in self._platform.list_stacks():
            if stack.name == server.stack_name:
                self._platform.delete_stack(stack.id, stack.environment_id or environment_id)
                notes.append(f"stack {stack.id} deleted")

        return ", ".join(notes)

    def _remove_record(self, server: Server) -> str:
        if self._repo.delete(server.unique_id):
            return "record removed"
        return "record already removed"

    def _remove_dns(self, server: Server) -> str:
        if not server.subdomain_name:
            return "no subdomain"
        if self._dns is None:
            return "dns not configured"
        self._dns.delete_record(server.subdomain_name, server.owner)
        return f"{server.subdomain_name} removed"

    def _remove_files(self, server: Server, reason: str) -> str:
        storage = self._layout.storage
        root = self._layout.root(server.owner, server.unique_id)

        if not storage.exists(root):
            return "no files"

        if not self._delete_server_folders:
            destination = self._layout.archive_path(server, reason)
            storage.move(root, destination)
            return f"archived to {destination}"

        try:
            count = self._delete_manifest(root)
            return f"{count} entries deleted"
        except ServerEngineError as primary:
            logger.warning(f"[delete] manifest delete of {root} failed, falling back: {primary}")
            try:
                storage.delete_directory(root)
            except ServerEngineError as fallback:
                raise PlatformError(
                    f"manifest delete failed ({primary}); recursive delete failed ({fallback})",
                    backend="storage",
                ) from fallback
            return f"recursive delete after manifest failure: {primary}"

    def _delete_manifest(self, root: str) -> int:
        """Delete files first, then directories deepest first, then the root."""
        storage = self._layout.storage
        files: List[FileEntry] = []
        directories: List[FileEntry] = []
        pending = [root]
        while pending:
            for entry in storage.list_directory(pending.pop()):
                if entry.is_dir:
                    directories.append(entry)
                    pending.append(entry.path)
                else:
                    files.append(entry)

        for entry in files:
            storage.delete(entry.path)
        for entry in sorted(directories, key=lambda e: e.path.count("/"), reverse=True):
            storage.delete_directory(entry.path)
        storage.delete_directory(root)
        return len(files) + len(directories) + 1
