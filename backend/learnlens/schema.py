# Column schema shared by the upload endpoint and the client-side intake checks.

REQUIRED_COLUMNS = [
    "student_id",
    "name",
    "class",
    "comprehension",
    "attention",
    "focus",
    "retention",
    "assessment_score",
    "engagement_time",
]

NUMERIC_COLUMNS = [
    "comprehension",
    "attention",
    "focus",
    "retention",
    "assessment_score",
    "engagement_time",
]

# Skills plotted against assessment_score
SKILL_COLUMNS = ["comprehension", "attention", "focus", "retention", "engagement_time"]

MAX_FILE_BYTES = 5 * 1024 * 1024
HEADER_PREVIEW_BYTES = 5000


def has_csv_extension(filename):
    """True if the filename ends in .csv, ignoring case."""
    return bool(filename) and filename.lower().endswith(".csv")


def missing_columns(header_line):
    """
    Return the required column tokens absent from a header line.

    The check is a case-insensitive substring match against the raw line, so
    column order and surrounding whitespace do not matter.
    """
    header = header_line.lower()
    return [col for col in REQUIRED_COLUMNS if col not in header]
