"""patchrepo: filesystem-backed repository of product patches.

Ingests patch archives, decomposes them per provider (layers and add-ons),
tracks per-provider versions with add-on compatibility gating, walks
cumulative update chains, and re-synthesizes installable archives.
"""

__version__ = "0.1.0"
__description__ = (
    "Patch repository with per-provider versioning and update-chain resolution"
)

from patchrepo.core.repository import PatchRepository
from patchrepo.models.identity import AddOnInfo, IdentityInfo

__all__ = ["PatchRepository", "IdentityInfo", "AddOnInfo", "__version__"]
