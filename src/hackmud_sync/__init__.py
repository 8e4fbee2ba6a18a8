"""hackmud-sync: push, watch and pull hackmud scripts.

Synchronises a source tree of ``.js``/``.ts`` scripts into the per-user
``scripts`` folders of a hackmud installation, honouring per-user
overrides, and merges shared macros across every known user.
"""

__version__ = "0.4.0"

from .sync.engine import pull, push, test_scripts
from .sync.macros import sync_macros
from .sync.watcher import watch
from .transform import process_script, script_length

__all__ = [
    "__version__",
    "process_script",
    "pull",
    "push",
    "script_length",
    "sync_macros",
    "test_scripts",
    "watch",
]
