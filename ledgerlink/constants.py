"""LedgerLink 项目使用的常量定义。"""

DEFAULT_PORT = 9000
DEFAULT_BACKLOG = 10
DEFAULT_CONFIG_FILE = "config.yaml"
DEFAULT_FILES_DIR = "data/files"
DEFAULT_MAX_FRAME_SIZE = 1024 * 1024
DEFAULT_CONNECT_TIMEOUT_MS = 5000

FIELD_DELIMITER = "|"
HEADER_SIZE = 4
LOOPBACK_ALIAS = "localhost"
LOOPBACK_ADDRESS = "127.0.0.1"
ANY_ADDRESS = "0.0.0.0"
