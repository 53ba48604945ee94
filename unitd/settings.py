"""
This module contains the configuration settings for unitd.
It defines the state directories, unit defaults, daemon and timeout settings.
Every value can be overridden through the environment or a `.env` file.
"""

import os
import sys
import pathlib
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv(override=False)

#* --- Core Paths ---
UNITD_HOME = pathlib.Path(os.getenv("UNITD_HOME", pathlib.Path.home() / ".unitd")).expanduser()
UNITS_DIR = pathlib.Path(os.getenv("UNITD_UNITS_DIR", UNITD_HOME / "system"))
RUNTIME_DIR = pathlib.Path(os.getenv("UNITD_RUNTIME_DIR", UNITD_HOME / "runtime"))
LOGS_DIR = pathlib.Path(os.getenv("UNITD_LOGS_DIR", UNITD_HOME / "logs"))
DIAGNOSTICS_DIR = pathlib.Path(os.getenv("UNITD_DIAGNOSTICS_DIR", UNITD_HOME / "diagnostics"))
LOG_FILE_PATH = LOGS_DIR / "unitd.log"
OVERRIDES_JSON_PATH = UNITD_HOME / "overrides.json"

#* --- Convention-based resolution ---
# Units without an ExecStart are looked up as <APP_BASE_DIR>/<short>/<name>
APP_BASE_DIR = pathlib.Path(os.getenv("UNITD_APP_BASE_DIR", "/app"))
PYTHON_EXECUTABLE = os.getenv("PYTHON_EXECUTABLE", sys.executable)

#* --- Unit Defaults ---
DEFAULT_WORKING_DIRECTORY = os.getenv("UNITD_DEFAULT_WORKING_DIRECTORY", "/app")
DEFAULT_RESTART_POLICY = os.getenv("UNITD_DEFAULT_RESTART_POLICY", "on-failure")
DEFAULT_RESTART_SEC = int(os.getenv("UNITD_DEFAULT_RESTART_SEC", "5"))
DEFAULT_SERVICE_TYPE = "simple"
UNIT_FILE_SUFFIX = ".service"
UNIT_TEMPLATE = (
    "[Unit]\n"
    "Description={Description}\n"
    "[Service]\n"
    "Type={Type}\n"
    "ExecStart={ExecStart}\n"
    "WorkingDirectory={WorkingDirectory}\n"
    "Restart={Restart}\n"
    "RestartSec={RestartSec}\n"
)

#* --- Supervisor Settings ---
GRACEFUL_STOP_TIMEOUT = float(os.getenv("UNITD_GRACEFUL_STOP_TIMEOUT", "10"))  # seconds before force-killing
FORCED_KILL_TIMEOUT = 5  # seconds to wait for a killed tree to disappear
CREATE_TIME_TOLERANCE = float(os.getenv("UNITD_CREATE_TIME_TOLERANCE", "0.05"))

#* --- Daemon Settings ---
DAEMON_HOST = os.getenv("UNITD_DAEMON_HOST", "127.0.0.1")
DAEMON_PORT = int(os.getenv("UNITD_DAEMON_PORT", "6000"))
COMMAND_TIMEOUT = float(os.getenv("UNITD_COMMAND_TIMEOUT", "30"))  # seconds per daemon command
CLIENT_TIMEOUT = float(os.getenv("UNITD_CLIENT_TIMEOUT", "60"))
DAEMON_PROCESS_TITLE = "unitd - Daemon"

#* --- Diagnostics ---
DIAGNOSTICS_ENABLED = os.getenv("UNITD_DIAGNOSTICS_ENABLED", "True").lower() in ('true', '1', 't')
DIAGNOSTICS_URL = os.getenv("UNITD_DIAGNOSTICS_URL", "")
DIAGNOSTICS_TIMEOUT = 3

#* --- Application variables ---
VERBOSE_LOGGING = False

#* --- MODIFIABLE SETTINGS (Changeable through overrides.json) ---
MODIFIABLE_SETTINGS = {
    "APP_BASE_DIR", "DEFAULT_WORKING_DIRECTORY",
    "DEFAULT_RESTART_POLICY", "DEFAULT_RESTART_SEC",
    "GRACEFUL_STOP_TIMEOUT", "COMMAND_TIMEOUT",
    "DAEMON_PORT", "DIAGNOSTICS_URL", "DIAGNOSTICS_ENABLED",
}
