"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    PARSE_ERROR = 3


class CacheFamily(Enum):
    """Version cache partitions, one per upstream version source.

    Args:
        Enum (string): Family name used as the first half of a cache key.
    """

    GITHUB = "github"
    GITLAB = "gitlab"
    DENO_LAND = "deno_land"
    JSR = "jsr"
    NPM = "npm"
    UNPKG = "unpkg"
    NEST_LAND = "nest_land"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    # Version source endpoints
    DENO_LAND_VERSIONS_URL = "https://cdn.deno.land/{name}/meta/versions.json"
    JSR_META_URL = "https://jsr.io/{name}/meta.json"
    NPM_REGISTRY_URL = "https://registry.npmjs.org/{name}"
    UNPKG_BROWSE_URL = "https://unpkg.com/browse/{name}/"
    GITHUB_RELEASES_FEED_URL = "https://github.com/{owner}/{repo}/releases.atom"
    GITLAB_TAGS_FEED_URL = "https://gitlab.com/{owner}/{repo}/-/tags?format=atom&page={page}"
    NEST_LAND_PACKAGE_URL = "https://x.nest.land/api/package/{name}"

    # Feed pagination
    GITHUB_FEED_PAGE_SIZE = 10
    GITHUB_FEED_MAX_EXTRA_PAGES = 5
    GITLAB_FEED_PAGE_SIZE = 20
    GITLAB_FEED_MAX_PAGES = 3

    # None means no timeout; fetches wait for the upstream indefinitely
    REQUEST_TIMEOUT = None
    USER_AGENT = "depupdate/0.1"

    DENO_JSON_FILES = ["deno.json", "deno.jsonc"]
    DEFAULT_IMPORT_MAP = "./import_map.json"
    CONFIG_FILE = "depupdate.yml"

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_LOG_LEVEL = "DEPUPDATE_LOG_LEVEL"
