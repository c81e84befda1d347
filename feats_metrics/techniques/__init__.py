"""Auto-discovery of technique modules.

Every .py file in this package that defines a `technique` object is
auto-registered by feats_metrics.registry.discover().

The explicit imports below ensure PyInstaller includes these modules
in the frozen binary. Without them, pkgutil.iter_modules cannot find
the technique files at runtime.
"""

# PyInstaller hidden imports — keep this list in sync with technique modules
import feats_metrics.techniques.all as _all  # noqa: F401
import feats_metrics.techniques.boundary as _boundary  # noqa: F401
import feats_metrics.techniques.masks as _masks  # noqa: F401
import feats_metrics.techniques.metrics as _metrics  # noqa: F401
import feats_metrics.techniques.narrate as _narrate  # noqa: F401
import feats_metrics.techniques.palette as _palette  # noqa: F401
