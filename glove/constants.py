"""Package-wide constants."""

SERVICE_NAME = "glove"

DEFAULT_MAX_RETRIES = 3
DEFAULT_MAX_ITERATIONS = 50
DEFAULT_MAX_TURNS = 120
DEFAULT_COMPACTION_CONTEXT_LIMIT = 100_000

TOOL_RESULTS_PLACEHOLDER = "tool results"
TASK_TOOL_NAME = "glove_update_tasks"
PERMISSION_RENDERER = "permission_request"
GENERIC_RENDERER = "generic"
