from __future__ import annotations

SCOPUS_AUTHOR_SEARCH_BASE = "https://api.elsevier.com/content/search/author"

# API keys come from a comma separated environment variable; the key file is
# only consulted when the variable is unset or empty
API_KEY_ENV_VAR = "ELSEVIER_KEY"
DEFAULT_KEY_FILE = "keys/Elsevier.key"

# run layout: <target>/<config>.txt is read and everything produced by the run
# lands in <target>/output/<config>
DEFAULT_TARGET_DIR = "target"
DEFAULT_CONFIG_NAME = "top200-08-mahidol-university-energy-with-id-20241205"
OUTPUT_SUBDIR = "output"
RESULT_FILE_SUFFIX = "-result.csv"
RUN_LOG_NAME = "run.log"

# cached responses and archived results share one naming scheme, so a cache
# directory equal to the output directory makes the cache authoritative
CACHE_FILE_PREFIX = "au-name-"
CACHE_FILE_SUFFIX = ".json"

# view requested from the author search endpoint; STANDARD carries
# preferred-name and document-count for each entry
SEARCH_VIEW = "STANDARD"

# width used for the record index in log lines and archive file names
INDEX_WIDTH = 5

# items buffered per tee branch before the fetch stage is made to wait
TEE_BUFFER_SIZE = 16

# HTTP request configuration
HTTP_TIMEOUT_DEFAULT = 30.0

# transport-level retries for transient server errors (handled by urllib3)
HTTP_BACKOFF_INITIAL = 0.5
HTTP_MAX_RETRIES = 2
HTTP_RETRY_STATUS_CODES = (408, 500, 502, 503, 504)

# maximum number of author searches in flight at once across all keys
SCOPUS_MAX_CONCURRENCY = 10

# status codes that retire the current API key when its quota is spent
SCOPUS_KEY_ROTATION_STATUS_CODES = (401, 403, 429)

# throttled (not exhausted) requests wait for Retry-After, at most this many
# times per search and never longer than the cap below
SCOPUS_MAX_RATE_LIMIT_WAITS = 3
SCOPUS_RATE_LIMIT_WAIT_MAX = 60.0
SCOPUS_RATE_LIMIT_WAIT_DEFAULT = 1.0
