"""Argument parsing functionality for plugstage."""

import argparse
from constants import Constants

def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="plugstage",
        description=(
            "plugstage - Resolve plugins and their Maven dependencies into a ready-to-load plugins directory"
        ),
        add_help=True,
    )

    parser.add_argument("-r", "--root",
                        dest="ROOT",
                        help=f"Plugins root directory (default: {Constants.DEFAULT_PLUGINS_ROOT})",
                        action="store", type=str)

    manifest_group = parser.add_mutually_exclusive_group()
    manifest_group.add_argument("-m", "--manifest",
                        dest="MANIFEST",
                        help=f"Plugins manifest, one coordinate per line (default: {Constants.DEFAULT_MANIFEST})",
                        action="store", type=str)
    manifest_group.add_argument("--no-manifest",
                        dest="NO_MANIFEST",
                        help="Skip the manifest pass.",
                        action="store_true")

    parser.add_argument("--local-repo",
                        dest="LOCAL_REPO",
                        help="Local Maven repository (default: ~/.m2/repository)",
                        action="store", type=str)
    parser.add_argument("--repository",
                        dest="REPOSITORIES",
                        help="Additional remote repository as ID=URL (repeatable, searched in order)",
                        action="append", type=str,
                        default=[])
    parser.add_argument("--no-central",
                        dest="NO_CENTRAL",
                        help="Do not search Maven Central.",
                        action="store_true")
    parser.add_argument("--no-loose",
                        dest="NO_LOOSE",
                        help="Leave loose archives in the plugins root untouched.",
                        action="store_true")
    parser.add_argument("--no-skip-existing",
                        dest="NO_SKIP_EXISTING",
                        help="Resolve dependencies even when a plugin's lib directory is already populated.",
                        action="store_true")
    parser.add_argument("--no-lock",
                        dest="NO_LOCK",
                        help="Do not take the plugins root lock.",
                        action="store_true")
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to a YAML or JSON config file",
                        action="store", type=str)

    parser.add_argument("-o", "--output",
                        dest="OUTPUT",
                        help="Path to the JSON run report",
                        action="store",
                        type=str)
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("--error-on-warnings",
                        dest="ERROR_ON_WARNINGS",
                        help="Exit with a non-zero status code if any plugin or dependency failed.",
                        action="store_true")
    parser.add_argument("-q", "--quiet",
                        dest="QUIET",
                        help="Do not output to console.",
                        action="store_true")

    return parser.parse_args(argv)
