"""Plugin discovery and loading.

Discovery: entry_points (pip-installed) via pluggy setuptools entrypoints,
plus local directory discovery from ``.linkctl/plugins/``.
Capabilities: lifecycle hooks and entity schema registration.
"""

from __future__ import annotations

import importlib.util
import inspect
import logging
import sys
from pathlib import Path
from typing import Any

import pluggy

from linkctl.plugins.hookspecs import LinkctlHookSpec

PROJECT_NAME = "linkctl"
ENTRY_POINT_GROUP = "linkctl.plugins"

logger = logging.getLogger(__name__)


class PluginManager:
    """Manages plugin discovery, loading, and hook dispatch."""

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(LinkctlHookSpec)
        self._loaded: bool = False

    def discover_and_load(self, *, local_dir: Path | None = None) -> list[str]:
        """Discover plugins from entry points and an optional local directory.

        Returns a list of loaded plugin names.
        """
        self._pm.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
        self._normalize_plugin_instances()
        if local_dir is not None:
            self._discover_local(local_dir)
        for plugin in self._pm.get_plugins():
            self._register_plugin_schemas(plugin, self._name_of(plugin))
        self._loaded = True
        return self.list_plugin_names()

    def register_plugin(self, plugin: object, name: str | None = None) -> None:
        """Register a plugin instance directly (e.g. built-in plugins)."""
        resolved_name = name or plugin.__class__.__name__
        self._pm.register(plugin, name=resolved_name)
        if self._loaded:
            self._register_plugin_schemas(plugin, resolved_name)
        logger.debug("Registered plugin: %s", resolved_name)

    def unregister(self, plugin: object) -> None:
        self._pm.unregister(plugin)

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def hook(self) -> pluggy.HookRelay:
        """Access the hook relay for dispatching events."""
        return self._pm.hook

    def dispatch(self, hook_name: str, payload: dict[str, Any]) -> None:
        """Call every implementation of *hook_name* with *payload*.

        Raises whatever an implementation raises; callers turn that into
        a warning.
        """
        hook_fn = getattr(self._pm.hook, hook_name, None)
        if hook_fn is None:
            return
        hook_fn(**payload)

    def get_plugins(self) -> list[object]:
        return list(self._pm.get_plugins())

    def list_plugin_names(self) -> list[str]:
        return [self._name_of(p) for p in self._pm.get_plugins()]

    def _name_of(self, plugin: object) -> str:
        return self._pm.get_name(plugin) or plugin.__class__.__name__

    # ------------------------------------------------------------------
    # Local directory discovery
    # ------------------------------------------------------------------

    def _discover_local(self, local_dir: Path) -> None:
        """Scan *local_dir* for single-file Python plugins.

        Each ``*.py`` file (excluding ``_``-prefixed names) is loaded as a
        module; classes carrying ``@hookimpl`` methods are instantiated and
        registered. A broken local plugin is logged and skipped.
        """
        if not local_dir.is_dir():
            return

        for py_file in sorted(local_dir.glob("*.py")):
            if py_file.name.startswith("_"):
                continue
            module_name = f"linkctl_local_plugin_{py_file.stem}"
            try:
                spec = importlib.util.spec_from_file_location(module_name, py_file)
                if spec is None or spec.loader is None:
                    logger.warning("Could not create module spec for %s", py_file)
                    continue
                module = importlib.util.module_from_spec(spec)
                sys.modules[module_name] = module
                spec.loader.exec_module(module)
            except Exception:
                logger.warning("Failed to load local plugin %s", py_file, exc_info=True)
                sys.modules.pop(module_name, None)
                continue

            for _attr_name, obj in inspect.getmembers(module, inspect.isclass):
                if obj.__module__ != module_name or not self._has_hook_impls(obj):
                    continue
                try:
                    self.register_plugin(obj(), name=module_name)
                except Exception:
                    logger.warning(
                        "Failed to instantiate plugin class %s from %s",
                        obj.__name__,
                        py_file,
                        exc_info=True,
                    )

    def _normalize_plugin_instances(self) -> None:
        """Replace registered plugin classes with instantiated objects.

        Entry-point loading may register a plugin class directly, which
        leaves ``self`` unbound at dispatch time.
        """
        for plugin in list(self._pm.get_plugins()):
            if not inspect.isclass(plugin) or not self._has_hook_impls(plugin):
                continue

            plugin_name = self._pm.get_name(plugin) or plugin.__name__
            self._pm.unregister(plugin)
            try:
                instance = plugin()
            except Exception:
                logger.warning(
                    "Failed to instantiate entry-point plugin %s",
                    plugin_name,
                    exc_info=True,
                )
                continue
            self._pm.register(instance, name=plugin_name)

    @staticmethod
    def _register_plugin_schemas(plugin: object, plugin_name: str) -> None:
        """Register entity schemas exposed by a single plugin instance."""
        from linkctl.domain.schema import EntitySchema, register_entity_schema

        hook = getattr(plugin, "register_entity_schemas", None)
        if hook is None:
            return

        try:
            schemas = hook()
        except Exception:
            logger.warning(
                "Failed to collect entity schemas from plugin %s",
                plugin_name,
                exc_info=True,
            )
            return

        if schemas is None:
            return
        for schema in schemas:
            if not isinstance(schema, EntitySchema):
                logger.warning("Plugin %s returned a non-schema registration", plugin_name)
                continue
            try:
                register_entity_schema(schema, replace=True)
            except ValueError:
                logger.warning(
                    "Skipping entity schema %r from plugin %s",
                    schema.key,
                    plugin_name,
                    exc_info=True,
                )

    @staticmethod
    def _has_hook_impls(cls: type) -> bool:
        """Check whether *cls* has any methods decorated with ``@hookimpl``.

        Pluggy's ``HookimplMarker("linkctl")`` sets a ``linkctl_impl``
        attribute on decorated methods.
        """
        for name in dir(cls):
            if name.startswith("_"):
                continue
            method = getattr(cls, name, None)
            if callable(method) and getattr(method, "linkctl_impl", None):
                return True
        return False
