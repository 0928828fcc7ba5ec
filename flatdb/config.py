"""
Configuration file for flatdb.
Contains all tunable parameters for table files, value rendering, and logging.
"""

# ============================================================================
# Table File Configuration
# ============================================================================

# Table file extension (table 'users' lives in users.csv)
TABLE_FILE_EXT = '.csv'

# Field delimiter used when reading and writing table files
FIELD_DELIMITER = ','

# Text encoding of table files
FILE_ENCODING = 'utf-8'

# Suffix of the temporary file used while rewriting a table
TEMP_FILE_SUFFIX = '.tmp'

# ============================================================================
# Value Rendering
# ============================================================================

# How values are written back to table files (NULL is an empty field)
NULL_TEXT = ''
TRUE_TEXT = 'true'
FALSE_TEXT = 'false'

# ============================================================================
# Parser Configuration
# ============================================================================

# Maximum SQL statement length
MAX_SQL_LENGTH = 65536  # 64KB

# ============================================================================
# Debug and Logging
# ============================================================================

# Enable debug mode (DEBUG level logging)
DEBUG = False

# Log file location (None disables file logging)
LOG_FILE = None

# Log record format
LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
