import logging

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def load_env_file() -> None:
    """Load environment variables from a local .env file.

    Does NOT overwrite existing environment variables, so production values
    always win over a developer's local file.
    """
    loaded = load_dotenv(override=False)

    if loaded:
        logger.info("Loaded local .env file (existing variables were NOT overwritten)")
    else:
        logger.debug("No local .env file found or loaded")
