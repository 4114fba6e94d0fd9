from typing import Any, Dict

from chatsync.config import AppRelease, Settings


def version_manifest(settings: Settings) -> Dict[str, Any]:
    """Body of ``GET /api/app/version``: the installed baseline and the latest release."""
    release: AppRelease = settings.APP_RELEASE
    return {
        "success": True,
        "currentVersion": settings.CURRENT_APP_VERSION,
        "latestVersion": release.model_dump(),
    }


def _parts(version: str):
    return tuple(int(part) if part.isdigit() else 0 for part in version.split("."))


def needs_update(installed: str, settings: Settings) -> bool:
    return _parts(installed) < _parts(settings.APP_RELEASE.version)


def must_update(installed: str, settings: Settings) -> bool:
    release = settings.APP_RELEASE
    return release.isForceUpdate or _parts(installed) < _parts(release.minVersion)
