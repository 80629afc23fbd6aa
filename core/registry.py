"""
Module Registry - Dynamic module registration and management.

Modules are started in registration order and shut down in reverse order,
so a module can rely on everything registered before it during shutdown.
"""
import importlib
import inspect
import logging
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Type

from core.interface import IAppModule
from core.app_context import AppContext


class ModuleRegistry:
    """
    Process-wide registry of application modules, looked up by name.
    """

    _instance: Optional["ModuleRegistry"] = None

    def __new__(cls) -> "ModuleRegistry":
        """Singleton pattern to ensure single registry instance."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self) -> None:
        if self._initialized:
            return

        self._modules: Dict[str, IAppModule] = {}
        self._logger = logging.getLogger(__name__)
        self._context: Optional[AppContext] = None
        self._initialized = True

    def set_context(self, context: AppContext) -> None:
        """Context handed to on_entry() of every module registered afterwards."""
        self._context = context

    def register(self, module: IAppModule) -> bool:
        """
        Register a module and, when a context is set, run its on_entry().

        A failing on_entry() is logged; the module stays registered.

        Returns:
            bool: False if a module with the same name is already registered.
        """
        module_name = module.get_module_name()

        if module_name in self._modules:
            self._logger.warning(f"Module '{module_name}' already registered. Skipping.")
            return False

        self._modules[module_name] = module
        self._logger.info(f"Module '{module_name}' registered")

        if self._context:
            try:
                module.on_entry(self._context)
                self._context.log_event(f"Module '{module_name}' initialized", "SUCCESS")
            except Exception as e:
                self._logger.error(f"Failed to initialize module '{module_name}': {e}")
                self._context.log_event(f"Module '{module_name}' init failed: {e}", "ERROR")

        return True

    def register_class(self, module_class: Type[IAppModule]) -> bool:
        """Instantiate ``module_class`` with no arguments and register it."""
        try:
            module_instance = module_class()
        except Exception as e:
            self._logger.error(f"Failed to instantiate {module_class.__name__}: {e}")
            return False
        return self.register(module_instance)

    def unregister(self, module_name: str) -> bool:
        """
        Run on_shutdown() and drop the module.

        Returns:
            bool: False if no such module is registered.
        """
        module = self._modules.pop(module_name, None)
        if module is None:
            self._logger.warning(f"Module '{module_name}' not found in registry.")
            return False

        try:
            module.on_shutdown()
        except Exception as e:
            self._logger.error(f"Error during module '{module_name}' shutdown: {e}")

        self._logger.info(f"Module '{module_name}' unregistered")
        return True

    def get_module(self, module_name: str) -> Optional[IAppModule]:
        return self._modules.get(module_name)

    def get_all_modules(self) -> List[IAppModule]:
        return list(self._modules.values())

    def get_module_names(self) -> List[str]:
        return list(self._modules.keys())

    def get_statuses(self) -> Dict[str, dict]:
        """Collect get_status() from every module; a failing module reports ``error``."""
        statuses = {}
        for name, module in self._modules.items():
            try:
                statuses[name] = module.get_status()
            except Exception as e:
                self._logger.error(f"Error getting status from module '{name}': {e}")
                statuses[name] = {"status": "error", "details": {"error": str(e)}}
        return statuses

    # =========================================================================
    # Lifespan hooks
    # =========================================================================

    async def async_startup_all(self) -> List[str]:
        """
        Run async_startup() on every module, in registration order.

        Returns:
            Names of the modules whose startup raised.
        """
        failed = []
        for name, module in list(self._modules.items()):
            try:
                await module.async_startup()
            except Exception as e:
                self._logger.exception(f"Async startup failed for module '{name}': {e}")
                failed.append(name)
        return failed

    async def async_shutdown_all(self) -> None:
        """Run async_shutdown() on every module, in reverse registration order."""
        for name, module in reversed(list(self._modules.items())):
            try:
                await module.async_shutdown()
            except Exception as e:
                self._logger.exception(f"Async shutdown failed for module '{name}': {e}")

    def shutdown_all(self) -> None:
        """Unregister every module, in reverse registration order."""
        for module_name in reversed(list(self._modules.keys())):
            self.unregister(module_name)
        self._logger.info("All modules shut down.")


class ModuleLoader:
    """
    Discovers module packages in a directory and registers their IAppModule classes.
    """

    def __init__(self, registry: ModuleRegistry) -> None:
        self._registry = registry
        self._logger = logging.getLogger(__name__)

    @staticmethod
    def _module_classes(package) -> Iterator[Type[IAppModule]]:
        """IAppModule subclasses defined inside ``package`` (not merely imported into it)."""
        prefix = package.__name__
        for _, attr in inspect.getmembers(package, inspect.isclass):
            if (
                issubclass(attr, IAppModule)
                and attr is not IAppModule
                and not inspect.isabstract(attr)
                and attr.__module__.startswith(prefix)
            ):
                yield attr

    def load_from_directory(self, modules_path: str, package_root: str = "modules") -> int:
        """
        Import every ``<package_root>.<name>`` package found in ``modules_path``.

        Subdirectories without ``__init__.py`` or starting with "_" are skipped.
        A package that fails to import is logged and skipped.

        Returns:
            int: Number of modules registered.
        """
        path = Path(modules_path)
        if not path.exists():
            self._logger.warning(f"Modules directory '{modules_path}' does not exist.")
            return 0

        loaded_count = 0

        for subdir in sorted(path.iterdir()):
            if not subdir.is_dir() or subdir.name.startswith("_"):
                continue
            if not (subdir / "__init__.py").exists():
                continue

            try:
                package = importlib.import_module(f"{package_root}.{subdir.name}")
            except Exception as e:
                self._logger.error(f"Error loading package module '{subdir.name}': {e}")
                continue

            for module_class in self._module_classes(package):
                if self._registry.register_class(module_class):
                    loaded_count += 1
                    self._logger.info(f"Loaded {module_class.__name__} from {subdir.name}")

        return loaded_count
