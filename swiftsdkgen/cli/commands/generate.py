"""
Generate command implementation.

Resolves settings from the configuration file and command line flags, then
runs the generation pipeline.
"""

import logging

from swiftsdkgen.cli.utils import print_error
from swiftsdkgen.config.parser import load_settings
from swiftsdkgen.core.exceptions import ConfigurationError, SDKGeneratorError
from swiftsdkgen.generator.pipeline import SDKGenerator

logger = logging.getLogger(__name__)

# Flags that override configuration file values
OVERRIDES = (
    "target",
    "host",
    "distribution_name",
    "distribution_version",
    "swift_version",
    "swift_branch",
    "lld_version",
    "artifact_id",
    "source_root",
    "incremental",
    "docker",
    "base_docker_image",
)


def run(args) -> int:
    """
    Run the generate command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, 1 for error)
    """
    logger.debug(f"Arguments: {args}")

    try:
        settings = load_settings(args.config)
        settings.apply_overrides(
            **{name: getattr(args, name, None) for name in OVERRIDES}
        )
        resolved = settings.resolve()
    except ConfigurationError as e:
        print_error("Invalid configuration", str(e))
        return 1

    logger.info(
        f"Generating Swift SDK {resolved.config.artifact_id} for "
        f"{resolved.versions.target_triple} ({resolved.versions.linux_distribution})"
    )

    generator = SDKGenerator(
        resolved.config,
        resolved.versions,
        resolved.paths,
        http_settings=resolved.http,
    )
    try:
        generator.run()
    except SDKGeneratorError as e:
        logger.debug("Generation failed", exc_info=True)
        print_error("Swift SDK generation failed", str(e))
        return 1

    return 0
