"""Technique discovery.

Every module under feats_metrics/techniques/ that defines a module-level
`technique` (a Technique) is registered under `technique.name`. Two modules
claiming the same name is a packaging bug and fails loudly.

A frozen (PyInstaller) build has no package directory for pkgutil to walk,
so the module list falls back to _FROZEN_MODULES, which must match the
hidden imports in techniques/__init__.py.
"""

import importlib
import pkgutil
from types import ModuleType

from feats_metrics.core.types import Technique

_FROZEN_MODULES = ('all', 'boundary', 'masks', 'metrics', 'narrate', 'palette')

_techniques: dict[str, Technique] = {}


def _module_names() -> list[str]:
    import feats_metrics.techniques as package

    names = [info.name for info in pkgutil.iter_modules(package.__path__) if not info.name.startswith('_')]
    return names or list(_FROZEN_MODULES)


def _technique_of(module: ModuleType) -> Technique | None:
    candidate = getattr(module, 'technique', None)
    return candidate if isinstance(candidate, Technique) else None


def discover() -> dict[str, Technique]:
    """Import the technique modules once; return {name: Technique} sorted by name."""
    if _techniques:
        return _techniques

    owners: dict[str, str] = {}
    found: dict[str, Technique] = {}
    for modname in _module_names():
        module = importlib.import_module(f'feats_metrics.techniques.{modname}')
        tech = _technique_of(module)
        if tech is None:
            continue
        if tech.name in owners:
            raise RuntimeError(f'technique {tech.name!r} defined twice: {owners[tech.name]} and {modname}')
        owners[tech.name] = modname
        found[tech.name] = tech

    _techniques.update(sorted(found.items()))
    return _techniques


def get(name: str) -> Technique:
    techniques = discover()
    try:
        return techniques[name]
    except KeyError:
        raise KeyError(f'Unknown technique: {name}. Available: {", ".join(techniques)}') from None


def all_techniques() -> dict[str, Technique]:
    return discover()


def automatic() -> list[Technique]:
    """Techniques that `all` may run unattended (no external service, not `all` itself)."""
    return [tech for tech in discover().values() if tech.automatic]
