"""Constants used in the project."""

import os
from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    EXIT_WARNINGS = 3


class Scope(Enum):
    """Maven dependency scopes.

    Args:
        Enum (string): Scope names as they appear in a POM.
    """

    COMPILE = "compile"
    RUNTIME = "runtime"
    PROVIDED = "provided"
    TEST = "test"
    SYSTEM = "system"
    IMPORT = "import"

    @classmethod
    def parse(cls, text):
        """Map a POM scope string to a Scope, or None when unset/unknown."""
        if not text:
            return None
        try:
            return cls(text.strip().lower())
        except ValueError:
            return None


# Supplied by the hosting environment or irrelevant at runtime; never copied.
EXCLUDED_SCOPES = frozenset({Scope.PROVIDED, Scope.TEST})


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    # Shared with the plugin runtime's classpath construction; must not change.
    LIB_DIR = "lib"

    DEFAULT_PLUGINS_ROOT = "plugins"
    DEFAULT_MANIFEST = "plugins.txt"
    DEFAULT_LOCAL_REPOSITORY = os.path.join(os.path.expanduser("~"), ".m2", "repository")
    DEFAULT_CONFIG_LOCATIONS = [
        "plugstage.yml",
        "plugstage.yaml",
        os.path.join(os.path.expanduser("~"), ".config", "plugstage", "plugstage.yml"),
    ]

    MAVEN_CENTRAL_ID = "central"
    MAVEN_CENTRAL_URL = "https://repo.maven.apache.org/maven2/"
    DEFAULT_ARTIFACT_TYPE = "jar"
    METADATA_FILE = "maven-metadata.xml"
    # Meta-versions pinned against repository metadata before resolution.
    META_VERSIONS = ("LATEST", "RELEASE")
    SNAPSHOT_SUFFIX = "-SNAPSHOT"

    EMBEDDED_POM_PATTERN = "META-INF/maven/*/*/pom.xml"
    JAR_MANIFEST_ENTRY = "META-INF/MANIFEST.MF"
    PLUGIN_PROPERTIES_ENTRY = "plugin.properties"
    PLUGIN_ID_ATTRIBUTE = "Plugin-Id"
    PLUGIN_ID_PROPERTY = "plugin.id"
    ARCHIVE_SUFFIXES = (".jar", ".zip")

    LOCK_FILE = ".plugstage.lock"
    PART_SUFFIX = ".part"

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_LOG_LEVEL = "PLUGSTAGE_LOG_LEVEL"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    DOWNLOAD_CHUNK_SIZE = 64 * 1024
    MAX_PARENT_DEPTH = 10
