"""Constants and configuration values for GeoEval."""

# Evaluation Constants
class EvaluationConstants:
    """Constants related to the evaluation pipeline."""

    # Progress checkpoints (percent)
    PROGRESS_ANALYZING = 5
    PROGRESS_GENERATING = 20
    PROGRESS_EVALUATION_START = 30  # analyze + generate account for the first 30%
    PROGRESS_EVALUATION_SPAN = 70
    PROGRESS_DONE = 100

    # Backend placeholder for a question that has not been asked yet
    PLACEHOLDER_ANSWER = "Not available yet"

    # Defaults for records built from loose payloads
    DEFAULT_CATEGORY = "General"
    CUSTOM_CATEGORY = "Custom Question"
    CUSTOM_ID_PREFIX = "custom-"
    SNAPSHOT_ID_PREFIX = "qna-"

    MISSING_INPUT_ERROR = "Please enter a valid domain and nation."
    ANALYSIS_FALLBACK_ERROR = "An unexpected error occurred during analysis."

# Highlight Constants
class HighlightConstants:
    """Constants for answer highlighting."""

    MIN_TERM_LENGTH = 3  # shorter terms are never highlighted
    TRAILING_PUNCTUATION = ".,!?;:"
    LINK_TLDS = (
        "com", "net", "org", "edu", "gov", "io", "biz", "info", "co",
        "uk", "ca", "au", "in", "us", "me", "tv", "ai", "app",
    )

# Report Constants
class ReportConstants:
    """Constants for the spreadsheet report."""

    # Performance label thresholds (visibility rate, percent)
    EXCELLENT_THRESHOLD = 70
    GOOD_THRESHOLD = 50
    NEEDS_WORK_THRESHOLD = 25

    NOT_APPLICABLE = "NA"
    NOTE_NO_MENTION = "No mention"
    NOTE_NOT_RECOMMENDED = "not recommended, Competition recommend."
    NOTE_NEGATIVE = "Negative review from regulatory."

    FOUND_YES = "YES ✓"
    FOUND_NO = "NO ✗"
    FOUND_PENDING = "PENDING"

    SHEET_PROMPT_TRACKING = "Prompt Tracking"
    SHEET_SUMMARY = "Executive Summary"
    SHEET_ZERO_MENTION = "Zero-Mention Opportunities"
    SHEET_COMPETITORS = "Competitor Analysis"
    SHEET_ALL_QNA = "All Q&A Data"
    SHEET_SIMPLE = "Authority Evaluation"

    COMPREHENSIVE_SUFFIX = "comprehensive_report.xlsx"
    SIMPLE_SUFFIX = "authority_report.xlsx"
    LOCAL_LABEL = "local"

    MAX_COLUMN_WIDTH = 80

# File and Path Constants
class FileConstants:
    """Constants for file operations."""

    REPORT_RULES_FILE = "report_rules.yaml"  # bundled under geoeval/config/
    LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
