import os
import logging
from dotenv import load_dotenv, find_dotenv

# Load environment variables from .env file
load_dotenv(find_dotenv())

# Document Settings
SCHEMA_VERSION = os.getenv("BLOCKDOC_SCHEMA_VERSION", "2.28.2") # Editor release whose output format we follow
DEFAULT_HEADER_LEVEL = int(os.getenv("BLOCKDOC_DEFAULT_HEADER_LEVEL", 2))
BLOCK_ID_LENGTH = int(os.getenv("BLOCKDOC_BLOCK_ID_LENGTH", 10))

# Logging Configuration
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def setup_logging():
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
