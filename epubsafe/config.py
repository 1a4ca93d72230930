"""
Centralized configuration
"""
import os
import logging
from pathlib import Path
from dotenv import load_dotenv

# Setup debug logger for configuration
_config_logger = logging.getLogger('config')

# Check for DEBUG_MODE early (before .env is loaded, check environment)
_debug_mode = os.getenv('DEBUG_MODE', 'false').lower() == 'true'
if _debug_mode:
    logging.basicConfig(level=logging.DEBUG, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    _config_logger.setLevel(logging.DEBUG)
    _config_logger.debug("DEBUG_MODE enabled - verbose logging active")

# .env is looked up in the current working directory
_env_file = Path.cwd() / '.env'

if not _env_file.exists():
    _config_logger.debug(f".env not found at {_env_file.absolute()}, using defaults")

_dotenv_result = load_dotenv(_env_file)
if _debug_mode:
    _config_logger.debug(f"load_dotenv() returned: {_dotenv_result}")

# Oracle (LLM) endpoint configuration
LLM_PROVIDER = os.getenv('LLM_PROVIDER', 'openai')
API_ENDPOINT = os.getenv('API_ENDPOINT', 'https://api.deepseek.com/v1/chat/completions')
DEFAULT_MODEL = os.getenv('DEFAULT_MODEL', 'deepseek-chat')
API_KEY = os.getenv('API_KEY', '')
REQUEST_TIMEOUT = int(os.getenv('REQUEST_TIMEOUT', '300'))
LLM_TEMPERATURE = float(os.getenv('LLM_TEMPERATURE', '0.2'))
LLM_MAX_TOKENS = int(os.getenv('LLM_MAX_TOKENS', '4000'))

# Unit-level retry policy (applied by the book driver, never inside a batch)
MAX_TRANSLATION_ATTEMPTS = int(os.getenv('MAX_TRANSLATION_ATTEMPTS', '2'))
RETRY_DELAY_SECONDS = int(os.getenv('RETRY_DELAY_SECONDS', '2'))

# Default languages from environment
DEFAULT_SOURCE_LANGUAGE = os.getenv('DEFAULT_SOURCE_LANGUAGE', 'English')
DEFAULT_TARGET_LANGUAGE = os.getenv('DEFAULT_TARGET_LANGUAGE', 'Chinese')

# Output configuration
OUTPUT_DIR = os.getenv('OUTPUT_DIR', 'translated_files')
DEFAULT_OUTPUT_MODE = os.getenv('DEFAULT_OUTPUT_MODE', 'single')

# Debug mode (reload after .env is loaded)
DEBUG_MODE = os.getenv('DEBUG_MODE', 'false').lower() == 'true'

if DEBUG_MODE or _debug_mode:
    _config_logger.setLevel(logging.DEBUG)
    _config_logger.debug("=" * 60)
    _config_logger.debug("LOADED CONFIGURATION VALUES:")
    _config_logger.debug(f"   LLM_PROVIDER: {LLM_PROVIDER}")
    _config_logger.debug(f"   API_ENDPOINT: {API_ENDPOINT}")
    _config_logger.debug(f"   DEFAULT_MODEL: {DEFAULT_MODEL}")
    _config_logger.debug(f"   REQUEST_TIMEOUT: {REQUEST_TIMEOUT}")
    _config_logger.debug(f"   MAX_TRANSLATION_ATTEMPTS: {MAX_TRANSLATION_ATTEMPTS}")
    _config_logger.debug(f"   DEFAULT_SOURCE_LANGUAGE: {DEFAULT_SOURCE_LANGUAGE}")
    _config_logger.debug(f"   DEFAULT_TARGET_LANGUAGE: {DEFAULT_TARGET_LANGUAGE}")
    _config_logger.debug(f"   API_KEY: {'***' + API_KEY[-4:] if API_KEY else '(not set)'}")
    _config_logger.debug("=" * 60)

# Think blocks emitted by reasoning models are dropped before parsing
THINK_TAG_IN = "<think>"
THINK_TAG_OUT = "</think>"

# ============================================================================
# EPUB CONTAINER CONFIGURATION
# ============================================================================

NAMESPACES = {
    'opf': 'http://www.idpf.org/2007/opf',
    'dc': 'http://purl.org/dc/elements/1.1/',
    'xhtml': 'http://www.w3.org/1999/xhtml',
    'epub': 'http://www.idpf.org/2007/ops',
    'container': 'urn:oasis:names:tc:opendocument:xmlns:container',
}

MIMETYPE_ENTRY = 'mimetype'
MIMETYPE_CONTENT = 'application/epub+zip'
CONTAINER_PATH = 'META-INF/container.xml'

# Spine documents whose media type matches are treated as translatable markup
MARKUP_MEDIA_TYPE_PATTERN = r'xhtml|html'

# Suffix inserted before the extension of translated sibling files
BILINGUAL_FILE_SUFFIX = '_translated'
BILINGUAL_ID_SUFFIX = '__translated'
