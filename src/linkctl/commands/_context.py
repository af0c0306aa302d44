"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``. Provides lazy store/gateway/plugin initialization,
service factories, and centralized result emission (stdout/stderr routing
plus exit codes).
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import TYPE_CHECKING, Any, TypeVar

import click

from linkctl.output.formatters import OutputSettings, format_result
from linkctl.services.notifier import NotificationLog

if TYPE_CHECKING:
    from linkctl.config.settings import LinkctlSettings
    from linkctl.domain.schema import EntitySchema
    from linkctl.infrastructure.gateway import SqlGateway
    from linkctl.infrastructure.store import LinkStore
    from linkctl.plugins.manager import PluginManager
    from linkctl.services.channels import ChannelService
    from linkctl.services.dispatch import DispatchService
    from linkctl.services.editing import EditSession
    from linkctl.services.links import LinkService
    from linkctl.services.result import ServiceResult

_T = TypeVar("_T")


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    The store is opened lazily on first use so ``--help`` and ``--version``
    never touch the database.
    """

    def __init__(self, settings: LinkctlSettings) -> None:
        self.settings = settings
        self.notifications = NotificationLog()
        self._store: LinkStore | None = None
        self._gateway: SqlGateway | None = None
        self._plugins: PluginManager | None = None
        self._schemas_loaded = False

        from linkctl.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

        if settings.verbose:
            from linkctl.services.telemetry import enable_telemetry

            enable_telemetry()

    # ------------------------------------------------------------------
    # Lazy infrastructure
    # ------------------------------------------------------------------

    @property
    def store(self) -> LinkStore:
        if self._store is None:
            from linkctl.infrastructure.store import LinkStore

            self._store = LinkStore.open(self.settings.db_path)
        return self._store

    @property
    def gateway(self) -> SqlGateway:
        if self._gateway is None:
            from linkctl.infrastructure.gateway import SqlGateway

            self._gateway = SqlGateway(self.store)
        return self._gateway

    @property
    def plugins(self) -> PluginManager:
        """Plugin manager with entry-point, local, and built-in plugins loaded."""
        if self._plugins is None:
            from linkctl.plugins.manager import PluginManager

            pm = PluginManager()
            pm.discover_and_load(local_dir=self.settings.plugin_dir)
            if self.settings.plugins.audit:
                from linkctl.plugins.builtins.audit import AuditPlugin

                pm.register_plugin(AuditPlugin(), name="audit-builtin")
            self._plugins = pm
        return self._plugins

    def schema(self, key: str | None = None) -> EntitySchema:
        """Entity schema by key (default: the entity links route).

        Config-defined schemas are registered on first call.
        """
        from linkctl.domain.schema import (
            get_entity_schema,
            register_entity_schema,
            schema_from_mapping,
        )

        if not self._schemas_loaded:
            # Plugins register their schemas during discovery.
            _ = self.plugins
            for entity_key, spec in self.settings.entities.items():
                try:
                    register_entity_schema(schema_from_mapping(entity_key, spec), replace=True)
                except ValueError as exc:
                    msg = f"Invalid [entities.{entity_key}] config: {exc}"
                    raise click.ClickException(msg) from exc
            self._schemas_loaded = True

        resolved = key or self.settings.links.entity
        try:
            return get_entity_schema(resolved)
        except KeyError:
            msg = f"Unknown entity type: {resolved!r}"
            raise click.ClickException(msg) from None

    # ------------------------------------------------------------------
    # Service factories
    # ------------------------------------------------------------------

    def owner(self, owner: str | None) -> str:
        return owner or self.settings.links.default_owner

    def link_service(self, owner: str | None = None) -> LinkService:
        from linkctl.config.logging import bind_command_context
        from linkctl.services.links import LinkService

        resolved = self.owner(owner)
        bind_command_context(owner=resolved)
        return LinkService(
            self.gateway,
            resolved,
            self.schema(),
            notifier=self.notifications,
            plugins=self.plugins,
            page_size=self.settings.channels.page_size,
            conflict_check=self.settings.links.conflict_check,
        )

    def channel_service(self) -> ChannelService:
        from linkctl.services.channels import ChannelService

        return ChannelService(self.gateway, notifier=self.notifications, plugins=self.plugins)

    def dispatch_service(self) -> DispatchService:
        from linkctl.services.dispatch import DispatchService

        return DispatchService(
            self.gateway, self.schema(), notifier=self.notifications, plugins=self.plugins
        )

    def edit_session(self, entity: str | None = None) -> EditSession:
        from linkctl.config.logging import bind_command_context
        from linkctl.services.editing import EditSession, NavigationGuard

        schema = self.schema(entity)
        bind_command_context(entity=schema.key)
        return EditSession(
            self.gateway,
            schema,
            notifier=self.notifications,
            plugins=self.plugins,
            guard=NavigationGuard(),
        )

    # ------------------------------------------------------------------
    # Execution and output
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Dispose the store engine, if one was opened, and drop log context."""
        from linkctl.config.logging import clear_command_context

        clear_command_context()
        if self._store is not None:
            self._store.dispose()
            self._store = None
            self._gateway = None

    def run(self, coro: Coroutine[Any, Any, _T]) -> _T:
        """Run a service coroutine to completion on a fresh event loop."""
        return asyncio.run(coro)

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
        * Failure: writes to stderr, exits with code 1.

        Notifications collected during the command go to stderr in human
        mode so they never pollute piped output.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        notes = self.notifications.drain()
        if notes and not settings.json_output and not settings.quiet:
            from linkctl.output.renderers import render_notifications

            click.echo(render_notifications(notes), err=True)

        if result.ok:
            click.echo(output)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
