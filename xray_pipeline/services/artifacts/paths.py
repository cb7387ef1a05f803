"""
Path derivation for app packages and their artifact directories.

Identity-based apps map to ``<root>/<id>/<store>/<region>/<version>``; apps
built from an explicit package path use that path and get a fresh temporary
artifact directory.
"""

from __future__ import annotations

import tempfile
from pathlib import Path

from ...core.config import Config
from ...core.exceptions import ArtifactFilesystemError
from ...models.app import App

PACKAGE_EXTENSION = ".apk"


class PathResolver:
    """Derives canonical on-disk locations for an app."""

    def __init__(self, config: Config) -> None:
        self.app_root = config.app_dir
        self.unpack_root = config.unpack_dir

    def _identity_parts(self, app: App) -> tuple[str, str, str, str]:
        return app.id, app.store, app.region, app.version

    def app_dir(self, app: App) -> Path:
        """Directory holding the package and other per-app files."""
        if app.has_explicit_path:
            return app.path.parent
        return self.app_root.joinpath(*self._identity_parts(app))

    def package_path(self, app: App) -> Path:
        """Location of the package file. Pure; never touches the disk."""
        if app.has_explicit_path:
            return app.path
        return self.app_dir(app) / f"{app.id}{PACKAGE_EXTENSION}"

    def derived_artifact_dir(self, app: App) -> Path | None:
        """Artifact directory the app has or would get, without creating it.

        Returns None for path-based apps that have not been unpacked yet,
        since their directory name is only known once allocated.
        """
        if app.unpack_dir is not None:
            return app.unpack_dir
        if app.has_explicit_path:
            return None
        return self.unpack_root.joinpath(*self._identity_parts(app))

    def artifact_dir(self, app: App) -> Path:
        """Resolve the artifact directory, creating it on first call.

        The result is recorded on the app and returned unchanged by later
        calls.

        Raises:
            ArtifactFilesystemError: If the directory cannot be created.
        """
        if app.unpack_dir is not None:
            return app.unpack_dir

        try:
            if app.has_explicit_path:
                self.unpack_root.mkdir(parents=True, exist_ok=True)
                unpack_dir = Path(tempfile.mkdtemp(prefix=app.path.name, dir=self.unpack_root))
            else:
                unpack_dir = self.unpack_root.joinpath(*self._identity_parts(app))
                unpack_dir.mkdir(mode=0o755, parents=True, exist_ok=True)
        except OSError as e:
            raise ArtifactFilesystemError(
                message=f"Failed to create artifact dir in {self.unpack_root}",
                operation="artifact_dir",
                package_path=str(self.package_path(app)),
                cause=e,
            )

        app.unpack_dir = unpack_dir
        return unpack_dir
