"""miniapp: Run Script build phase injection and Swift package manifests for iOS host apps."""

__version__ = "0.1.4"
__author__ = "miniapp Contributors"
__description__ = "Inject a dependency manifest build phase into Xcode projects"

from .injector import BuildPhaseInjector
from .manifest import extract_manifest
from .models import InjectionOutcome, InjectionStatus, MiniAppConfig, PersistenceStrategy
from .resolver import resolve_target

__all__ = [
    "BuildPhaseInjector",
    "InjectionOutcome",
    "InjectionStatus",
    "MiniAppConfig",
    "PersistenceStrategy",
    "extract_manifest",
    "resolve_target",
]
