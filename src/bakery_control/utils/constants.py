"""
Constants for the Bakery Control application.

This module defines system-wide constants including:
- Application metadata
- Ingredient defaults
- Validation limits and error messages

Enumerated domain values (units, statuses, payment methods) live in
bakery_control.models.enums.
"""

# ============================================================================
# Application Metadata
# ============================================================================

APP_NAME = "Bakery Control"
APP_VERSION = "0.1.0"
DATABASE_VERSION = "1.0"

# ============================================================================
# Ingredient Defaults
# ============================================================================

# Days until a freshly received ingredient expires when no date is given
DEFAULT_SHELF_LIFE_DAYS = 30

# ============================================================================
# Costing
# ============================================================================

# Profit margin (percent) below which a production plan is flagged
LOW_MARGIN_THRESHOLD = 20

# ============================================================================
# Validation Constants
# ============================================================================

# String length limits
MAX_NAME_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 500
MAX_SUPPLIER_LENGTH = 200
MAX_NOTES_LENGTH = 2000

# Numeric limits
MIN_QUANTITY = 0.0
MAX_QUANTITY = 999999.999
MIN_COST = 0.0
MAX_COST = 999999.99

# Money is rounded to cents
CURRENCY_DECIMAL_PLACES = 2

# Stock columns are Numeric(18, 3)
STOCK_SCALE = 3

# ============================================================================
# Database Constants
# ============================================================================

DATABASE_FILENAME = "bakery_control.db"

# ============================================================================
# Date/Time Formats
# ============================================================================

INVOICE_DATE_FORMAT = "%Y%m%d"

# ============================================================================
# Error Messages
# ============================================================================

ERROR_REQUIRED_FIELD = "This field is required"
ERROR_INVALID_NUMBER = "Please enter a valid number"
ERROR_INVALID_POSITIVE = "Value must be greater than zero"
ERROR_INVALID_NON_NEGATIVE = "Value must be zero or greater"
ERROR_INVALID_UNIT = "Invalid unit type"
ERROR_INVALID_STATUS = "Invalid production status"
