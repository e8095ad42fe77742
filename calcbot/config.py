import os

# --- Configuration ---
# Every setting can be overridden from the environment.

HOST = os.environ.get("CALCBOT_HOST", "0.0.0.0")
PORT = int(os.environ.get("CALCBOT_PORT", "5200"))
DEBUG_MODE = os.environ.get("CALCBOT_DEBUG", "false").lower() in ("1", "true", "yes")
LOG_LEVEL = os.environ.get("CALCBOT_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"

# Account used by the terminal host
CLI_ACCOUNT = os.environ.get("CALCBOT_CLI_ACCOUNT", "cli")
HISTORY_FILE = os.environ.get(
    "CALCBOT_HISTORY_FILE", os.path.join(os.path.expanduser("~"), ".calcbot_history")
)

# Answer to the "author" command
AUTHOR = os.environ.get("CALCBOT_AUTHOR", "Bill Bryant")
