"""
Docker container runtime access.

Only one thing is ever done with a container: copy files out of a freshly
created (never started) container, then remove it.
"""

import logging
import shutil
import subprocess
from pathlib import Path
from typing import Iterable, List

from swiftsdkgen.core.exceptions import ImageCopyError

logger = logging.getLogger(__name__)


def image_archive_name(container_path: str) -> str:
    """
    File name of the tar stream holding a container path.

    Example:
        >>> image_archive_name("/usr/lib64")
        'usr_lib64.tar'
    """
    return container_path.strip("/").replace("/", "_") + ".tar"


class DockerClient:
    """Thin wrapper over the ``docker`` command line."""

    def __init__(self, executable: str = "docker"):
        self.executable = executable

    def _command(self, *args: str) -> List[str]:
        path = shutil.which(self.executable)
        if not path:
            raise ImageCopyError(
                f"'{self.executable}' not found on PATH, Docker is required "
                "for Docker-based generation"
            )
        return [path, *args]

    def _run(self, *args: str) -> str:
        cmd = self._command(*args)
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, check=True)
        except subprocess.CalledProcessError as e:
            raise ImageCopyError(
                f"docker {' '.join(args)} failed: {e.stderr.strip()}"
            ) from e
        return result.stdout.strip()

    def copy_out(
        self, image: str, container_paths: Iterable[str], destination: Path
    ) -> List[Path]:
        """
        Copy paths out of an image as tar streams.

        Each path is written to ``destination / image_archive_name(path)``.
        The container is removed on every exit path.

        Args:
            image: Image reference, pulled if absent
            container_paths: Absolute paths inside the image
            destination: Directory receiving the tar files

        Returns:
            Paths of the written tar files

        Raises:
            ImageCopyError: If any docker command fails
        """
        destination.mkdir(parents=True, exist_ok=True)
        logger.info(f"Copying target files out of Docker image {image}")
        container_id = self._run("create", image)

        archives = []
        try:
            for container_path in container_paths:
                archive = destination / image_archive_name(container_path)
                cmd = self._command("cp", f"{container_id}:{container_path}", "-")
                logger.debug(f"Running: {' '.join(cmd)}")

                with open(archive, "wb") as f:
                    result = subprocess.run(cmd, stdout=f, stderr=subprocess.PIPE)
                if result.returncode != 0:
                    raise ImageCopyError(
                        f"Failed to copy {container_path} from {image}: "
                        f"{result.stderr.decode(errors='replace').strip()}"
                    )
                archives.append(archive)
        finally:
            self._run("rm", "-f", container_id)

        return archives
