"""
Artifact Service.

Owns the unpack and cleanup lifecycle of an app's disassembled package.
Unpacking shells out to apktool; cleanup is explicit and never implicit.
"""

from __future__ import annotations

import asyncio
import os
import shutil
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import structlog

from ...core.config import Config
from ...core.exceptions import (
    ArtifactFilesystemError,
    DisassemblerError,
    PackageNotFoundError,
    PackageUnreadableError,
    ToolNotFoundError,
)
from ...core.logging import get_logger
from ...models.app import App
from .paths import PathResolver


class ArtifactManager:
    """Unpacks app packages into artifact directories and removes them again.

    Concurrent unpacks of the same app race on one output directory; callers
    that parallelize must serialize per app.
    """

    def __init__(
        self,
        config: Config,
        resolver: PathResolver | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        """Initialize the artifact manager.

        Args:
            config: Pipeline configuration
            resolver: Path resolver, built from config if not provided
            logger: Logger handle, defaults to the module logger
        """
        self.config = config
        self.resolver = resolver or PathResolver(config)
        self.logger = logger or get_logger(__name__)

    def _find_tool(self) -> Path:
        """Find apktool in the configured location or on PATH."""
        configured = self.config.tools.apktool_path
        if configured and configured.exists():
            if not os.access(configured, os.X_OK):
                raise ToolNotFoundError(
                    message="Tool not executable: apktool",
                    tool_name="apktool",
                    expected_path=str(configured),
                    install_hint=f"Make {configured} executable",
                )
            return configured

        tool_path = shutil.which("apktool")
        if tool_path:
            return Path(tool_path)

        raise ToolNotFoundError(
            message="Tool not found: apktool",
            tool_name="apktool",
            expected_path=str(configured) if configured else "PATH",
            install_hint="Install apktool and add to PATH",
        )

    def _check_package(self, package_path: Path) -> None:
        try:
            st = package_path.stat()
        except FileNotFoundError as e:
            raise PackageNotFoundError(
                message=f"Package not found: {package_path}",
                operation="unpack",
                package_path=str(package_path),
                cause=e,
            )
        except OSError as e:
            raise PackageUnreadableError(
                message=f"Couldn't open package {package_path}",
                operation="unpack",
                package_path=str(package_path),
                cause=e,
            )

        if not package_path.is_file() or not os.access(package_path, os.R_OK):
            raise PackageUnreadableError(
                message=f"Couldn't open package {package_path}",
                operation="unpack",
                package_path=str(package_path),
                context={"mode": oct(st.st_mode)},
            )

    async def unpack(self, app: App) -> Path:
        """Disassemble the app's package into its artifact directory.

        Re-entrant: apktool runs with force-overwrite, so unpacking an already
        unpacked app replaces the previous output.

        Returns:
            The artifact directory

        Raises:
            PackageNotFoundError: The package file does not exist
            PackageUnreadableError: The package exists but cannot be read
            ArtifactFilesystemError: Directories cannot be created or touched
            ToolNotFoundError: apktool is not installed
            DisassemblerError: apktool exited non-zero
        """
        package_path = self.resolver.package_path(app)
        self._check_package(package_path)
        out_dir = self.resolver.artifact_dir(app)

        try:
            out_dir.parent.mkdir(mode=0o755, parents=True, exist_ok=True)
        except OSError as e:
            raise ArtifactFilesystemError(
                message=f"Couldn't create {out_dir.parent}",
                operation="unpack",
                package_path=str(package_path),
                cause=e,
            )

        apktool = self._find_tool()
        cmd = [str(apktool), "d", "-s", str(package_path), "-o", str(out_dir), "-f"]
        self.logger.info("Unpacking package", package=str(package_path), output=str(out_dir))

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as e:
            raise ToolNotFoundError(
                message="Couldn't start apktool",
                tool_name="apktool",
                expected_path=str(apktool),
                install_hint="Install apktool and add to PATH",
                cause=e,
            )

        try:
            stdout, _ = await process.communicate()
        except asyncio.CancelledError:
            if process.returncode is None:
                process.kill()
            await process.wait()
            raise
        output = stdout.decode("utf-8", errors="replace") if stdout else ""

        if process.returncode != 0:
            self.logger.warning(
                "apktool failed",
                package=str(package_path),
                returncode=process.returncode,
                error_kind="external_tool",
            )
            raise DisassemblerError(
                message=f"apktool failed unpacking {package_path}",
                operation="unpack",
                package_path=str(package_path),
                returncode=process.returncode or 0,
                output=output,
            )

        try:
            os.utime(out_dir, None)
        except OSError as e:
            raise ArtifactFilesystemError(
                message=f"Couldn't update modification time of {out_dir}",
                operation="unpack",
                package_path=str(package_path),
                cause=e,
            )

        self.logger.debug("Unpack completed", output=str(out_dir))
        return out_dir

    async def cleanup(self, app: App) -> None:
        """Recursively remove the app's artifact directory.

        Removing a directory that does not exist is not an error.

        Raises:
            ArtifactFilesystemError: The directory exists but cannot be removed
        """
        target = self.resolver.derived_artifact_dir(app)
        if target is None:
            return

        try:
            await asyncio.to_thread(shutil.rmtree, target)
        except FileNotFoundError:
            return
        except OSError as e:
            raise ArtifactFilesystemError(
                message=f"Couldn't remove {target}",
                operation="cleanup",
                cause=e,
            )
        self.logger.debug("Removed artifact dir", path=str(target))

    @asynccontextmanager
    async def unpacked(self, app: App) -> AsyncIterator[Path]:
        """Unpack an app for the duration of a block, then clean up."""
        try:
            yield await self.unpack(app)
        finally:
            await self.cleanup(app)
