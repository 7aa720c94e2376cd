import logging

# Define package version
__version__ = "0.3.0"

# Configure default logging to avoid "No handler found" warnings
# basicConfig is a no-op once configured, so this format wins over
# the one main.py and manage.py ask for
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)

# Create a shared logger for the package
logger = logging.getLogger("prop_tracker")
