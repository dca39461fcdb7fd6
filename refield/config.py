"""
Configuration constants for the form re-authoring pipeline.
Geometry values are in viewport pixels unless the name says points.
"""

# Rendering
RENDER_SCALE = 1.5  # Fixed viewport scale used for extraction, preview and apply

# Extraction minimums (viewport pixels)
MIN_BUTTON_SIZE_PX = 12.0
MIN_TEXT_WIDTH_PX = 40.0
MIN_TEXT_HEIGHT_PX = 20.0

# Apply minimum for checkbox / radio widgets (PDF points)
MIN_BUTTON_SIZE_PT = 12.0

# Defaults for a field created by the "new field" command
NEW_FIELD_X = 60.0
NEW_FIELD_Y = 60.0
NEW_FIELD_WIDTH = 160.0
NEW_FIELD_HEIGHT = 28.0

# Naming
HIERARCHY_DELIMITER = "."
RADIO_OPTION_NAME = "on"
FIELD_NAME_PREFIXES = {
    "text": "Text",
    "date": "Text",
    "dropdown": "Text",
    "checkbox": "Check",
    "radio": "Radio",
}

# Output
OUTPUT_SUFFIX = ".with-fields.pdf"
DEFAULT_STEM = "document"

# Logging
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
