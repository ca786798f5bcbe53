# core/schema_registry.py
from __future__ import annotations
from typing import Callable, List, Tuple
from sqlalchemy.engine import Engine
import importlib
import logging
import pkgutil

log = logging.getLogger(__name__)

# Schema installer type
SchemaInstaller = Callable[[Engine], None]

# Registry: (name, installer_func)
_REGISTRY: List[Tuple[str, SchemaInstaller]] = []

def register(
    name: str | SchemaInstaller, installer: SchemaInstaller | None = None
) -> SchemaInstaller | Callable[[SchemaInstaller], SchemaInstaller]:
    """
    Registers a schema installer function.
    Can be used as a decorator (@register / @register("name")) or a
    function call (register("name", fn)).
    """
    # Used as @register("name")
    if isinstance(name, str) and installer is None:
        def decorator(fn: SchemaInstaller) -> SchemaInstaller:
            _add(name, fn)
            return fn
        return decorator

    # Used as @register
    elif callable(name) and installer is None:
        fn = name
        _add(fn.__name__, fn)
        return fn

    # Used as register("name", fn)
    elif isinstance(name, str) and callable(installer):
        _add(name, installer)
        return installer

    raise TypeError("Invalid usage of @register")

def _add(name: str, fn: SchemaInstaller) -> None:
    # re-imports (streamlit reruns, test reloads) must not double-register
    if any(n == name for n, _ in _REGISTRY):
        return
    _REGISTRY.append((name, fn))

def run_all(engine: Engine) -> None:
    """
    Runs all registered schema installers in registration order.
    """
    log.info("SchemaRegistry: running %d installers", len(_REGISTRY))
    for name, installer_fn in _REGISTRY:
        log.debug("Applying schema: %s", name)
        installer_fn(engine)
    log.info("SchemaRegistry: all installers complete")

def auto_discover(package: str = "schemas") -> None:
    """
    Imports every module of a package to trigger their @register decorators.
    Modules whose name starts with an underscore (seed data) are imported
    last so they run after the tables they fill exist.
    """
    pkg = importlib.import_module(package)
    names = sorted(
        (module_name for _, module_name, is_pkg in pkgutil.iter_modules(pkg.__path__, prefix=f"{package}.")
         if not is_pkg),
        key=lambda n: (n.rsplit(".", 1)[-1].startswith("_"), n),
    )
    for module_name in names:
        importlib.import_module(module_name)
        log.debug("Discovered schema module: %s", module_name)
