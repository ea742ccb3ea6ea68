def load_env_file() -> None:
    """Load environment variables from .env file if not already set.

    WHAT:
        Loads variables from a local .env file into os.environ.
        Does NOT overwrite existing environment variables.
    WHY:
        Lets developers keep DATABASE_URL and friends in a local .env
        without risking overwriting variables exported by the deployment.
    """
    import logging
    from dotenv import load_dotenv

    logger = logging.getLogger(__name__)

    # Returns True when a .env file was found, even if it set nothing new.
    loaded = load_dotenv(override=False)

    if loaded:
        logger.info("[ENV] Loaded local .env file (existing variables were NOT overwritten)")
    else:
        logger.debug("[ENV] No local .env file found or loaded")
