"""plugstage - stage plugins and their Maven dependencies into a plugins root.

    Resolves the plugins listed in a manifest (and the loose plugin archives
    already sitting in the plugins root) into one directory per plugin, with
    the plugin's runtime dependencies in its lib/ subdirectory.
"""

import logging
import sys

from args import parse_args
from cli_config import build_config
from common.errors import ConfigError, FilesystemError, LockError
from common.logging_utils import add_file_handler, configure_logging, extra_context, is_debug_enabled
from constants import ExitCodes
from registry.maven.repository import MavenRepositoryOracle, describe_repositories
from resolution.classifier import ComponentClassifier
from resolution.gateway import ArtifactResolutionGateway
from staging.materializer import FilesystemMaterializer
from staging.pipeline import StagePipeline
from staging.report import export_json


def main(argv=None):
    """Main function of the program."""
    logger = logging.getLogger(__name__)

    args = parse_args(argv)
    configure_logging(args.LOG_LEVEL, quiet=args.QUIET)
    if args.LOG_FILE:
        try:
            add_file_handler(args.LOG_FILE)
        except OSError as e:
            logging.error("Log file couldn't be opened: %s", e)
            sys.exit(ExitCodes.FILE_ERROR.value)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action="main")
        )

    try:
        config = build_config(args)
    except ConfigError as e:
        logging.error("%s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)

    logging.info("Plugins root: %s", config.plugins_root)
    logging.info("Repositories: %s", describe_repositories(config.remote_repositories))

    oracle = MavenRepositoryOracle(config.local_repository)
    gateway = ArtifactResolutionGateway(oracle, config.remote_repositories)
    classifier = ComponentClassifier()
    materializer = FilesystemMaterializer(config.plugins_root)
    pipeline = StagePipeline(config, gateway, classifier, materializer)

    try:
        report = pipeline.run()
    except (LockError, FilesystemError) as e:
        logging.error("%s", e)
        sys.exit(ExitCodes.FILE_ERROR.value)

    if args.OUTPUT:
        try:
            export_json(report, args.OUTPUT)
        except OSError as e:
            logging.error("JSON file couldn't be written to disk: %s", e)
            sys.exit(ExitCodes.FILE_ERROR.value)

    if report.has_failures:
        logging.warning("%d failure(s) during staging; the plugins root may be incomplete.",
                        len(report.failures))
        if args.ERROR_ON_WARNINGS:
            sys.exit(ExitCodes.EXIT_WARNINGS.value)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI finished",
            extra=extra_context(event="function_exit", component="cli", action="main", outcome="success")
        )
    sys.exit(ExitCodes.SUCCESS.value)


if __name__ == "__main__":
    main()
