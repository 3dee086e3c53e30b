"""Report data preparation and spreadsheet export."""

import io
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd
import yaml
from openpyxl.utils import get_column_letter

from ..core.config import settings
from ..core.constants import FileConstants, ReportConstants
from ..core.matching import contains_term
from ..core.models import GeoMetrics, QuestionResult
from ..core.state import round_half_up

logger = logging.getLogger(__name__)

PROMPT_TRACKING_COLUMNS = [
    "#", "Category", "Prompt", "Brand Agnostic", "Mentions", "Rank",
    "Intent Match", "Conversion", "Total Score", "Notes",
]
SUMMARY_COLUMNS = ["Metric", "Value"]
ZERO_MENTION_COLUMNS = ["#", "Category", "Prompt", "AI Answer", "Competitors Mentioned"]
COMPETITOR_COLUMNS = ["Rank", "Competitor", "Mentions", "Share of Answers (%)"]
QNA_COLUMNS = ["Category", "Question", "Full Answer", "Brand Found", "Notes"]
SIMPLE_COLUMNS = ["Category", "Question", "Full Answer", "Found (True/False)"]


@dataclass
class ReportData:
    """Everything that goes into one exported workbook."""
    filename: str
    sheets: Dict[str, List[Dict[str, Any]]]
    columns: Dict[str, List[str]]
    visibility_rate: int = 0
    performance: str = ""
    brand_agnostic: List[QuestionResult] = field(default_factory=list)
    zero_mention: List[QuestionResult] = field(default_factory=list)
    competitors: List[Tuple[str, int]] = field(default_factory=list)
    conclusions: List[str] = field(default_factory=list)


# --- rules file ---

def _get_default_rules() -> Dict[str, Any]:
    """Rules used when report_rules.yaml is not available."""
    return {
        "known_competitors": [
            "Angi", "HomeAdvisor", "Thumbtack", "Yelp", "Houzz", "Porch", "Nextdoor", "Bark",
            "Better Business Bureau", "Roto-Rooter", "Mr. Rooter", "ServiceMaster",
            "Home Depot", "Lowe's", "Sears Home Services",
        ],
        "conclusions": {
            "visibility_rate": [
                [70, "{brand} has strong AI visibility: it is mentioned in {value}% of assistant answers."],
                [50, "{brand} has solid AI visibility ({value}% of answers) with room to grow."],
                [25, "{brand} has limited AI visibility ({value}% of answers); most local questions favour other businesses."],
                [0, "{brand} is critically under-represented in AI answers ({value}% of answers)."],
            ],
            "organic_mention_rate": [
                [50, "Organic discovery is healthy: {value}% of brand-agnostic prompts mention {brand}."],
                [20, "Organic discovery is moderate: {value}% of brand-agnostic prompts mention {brand}."],
                [0, "Organic discovery is weak: only {value}% of brand-agnostic prompts mention {brand}."],
            ],
            "top_3_position_rate": [
                [50, "{brand} is listed in the top 3 for {value}% of organic prompts."],
                [25, "{brand} reaches the top 3 in {value}% of organic prompts; positioning needs reinforcement."],
                [0, "{brand} rarely appears in the top 3 ({value}% of organic prompts)."],
            ],
            "recommendation_rate": [
                [50, "Assistants actively recommend {brand} in {value}% of organic prompts."],
                [20, "Assistants recommend {brand} in {value}% of organic prompts."],
                [0, "Assistants seldom recommend {brand} ({value}% of organic prompts)."],
            ],
            "positive_sentiment_rate": [
                [70, "Sentiment around {brand} is positive in {value}% of answers that mention it."],
                [40, "Sentiment around {brand} is mixed ({value}% positive)."],
                [0, "Sentiment around {brand} is mostly neutral or negative ({value}% positive)."],
            ],
            "zero_mention": [
                [1, "{value} brand-agnostic prompts returned no mention of {brand}; these are the priority content opportunities."],
                [0, "Every brand-agnostic prompt mentions {brand}; no zero-mention gaps were found."],
            ],
            "top_competitor": [
                [1, "{competitor} is the most frequently mentioned competitor ({value} answers)."],
            ],
        },
    }


def load_report_rules(path: Optional[str] = None) -> Dict[str, Any]:
    """Load known competitors and conclusion wording."""
    rules_file = path or settings.report_rules_path or os.path.join(
        os.path.dirname(__file__), "..", "config", FileConstants.REPORT_RULES_FILE
    )
    defaults = _get_default_rules()
    try:
        with open(rules_file, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Failed to load report rules: {e}. Using defaults.")
        return defaults

    return {
        "known_competitors": loaded.get("known_competitors") or defaults["known_competitors"],
        "conclusions": {**defaults["conclusions"], **(loaded.get("conclusions") or {})},
    }


# --- per-question derivations ---

def score_question(result: QuestionResult) -> Dict[str, Any]:
    """Score columns for the prompt tracking sheet."""
    na = ReportConstants.NOT_APPLICABLE
    found = result.found and result.has_answer
    mentions = 1 if found else 0
    rank = 1 if found else na
    intent_match = (1 if found else 0) if result.has_answer else na
    conversion = 1 if found else 0
    total = mentions + rank + intent_match + conversion if found else 0
    return {
        "Mentions": mentions,
        "Rank": rank,
        "Intent Match": intent_match,
        "Conversion": conversion,
        "Total Score": total,
    }


def note_for(result: QuestionResult) -> str:
    found = result.found and result.has_answer
    if not found:
        return ReportConstants.NOTE_NO_MENTION
    answer = result.full_answer.lower()
    if "not recommended" in answer:
        return ReportConstants.NOTE_NOT_RECOMMENDED
    if "negative" in answer:
        return ReportConstants.NOTE_NEGATIVE
    return ""


def brand_found_label(result: QuestionResult) -> str:
    if not result.has_answer:
        return ReportConstants.FOUND_PENDING
    return ReportConstants.FOUND_YES if result.found else ReportConstants.FOUND_NO


def brand_agnostic_label(result: QuestionResult, brand_name: str) -> str:
    """Prompt tracking flag; unanswered prompts are not counted either way."""
    if not result.has_answer:
        return ReportConstants.NOT_APPLICABLE
    return "No" if contains_term(result.question, brand_name) else "Yes"


def brand_agnostic_results(results: Sequence[QuestionResult], brand_name: str) -> List[QuestionResult]:
    """Answered questions that do not name the brand themselves."""
    return [r for r in results if r.has_answer and not contains_term(r.question, brand_name)]


def zero_mention_results(results: Sequence[QuestionResult], brand_name: str) -> List[QuestionResult]:
    """Brand-agnostic questions whose answer also leaves the brand out."""
    return [r for r in brand_agnostic_results(results, brand_name) if not contains_term(r.full_answer, brand_name)]


def competitor_names(metrics: Optional[GeoMetrics], known_competitors: Sequence[str]) -> List[str]:
    """Metrics competitors first, then the known list; deduplicated case-insensitively."""
    seen, names = set(), []
    external = list(metrics.competitor_mentions.keys()) if metrics else []
    for name in external + list(known_competitors):
        key = (name or "").strip().lower()
        if not key or key in seen:
            continue
        seen.add(key)
        names.append(name.strip())
    return names


def competitor_counts(results: Sequence[QuestionResult], names: Sequence[str]) -> List[Tuple[str, int]]:
    """How many answers mention each competitor, most mentioned first."""
    answers = [r.full_answer for r in results if r.has_answer]
    counts = [(name, sum(1 for a in answers if contains_term(a, name))) for name in names]
    counts = [c for c in counts if c[1] > 0]
    return sorted(counts, key=lambda c: -c[1])


def category_sections(results: Sequence[QuestionResult]) -> List[Dict[str, Any]]:
    """Results grouped by category name, in lexicographic order."""
    groups: Dict[str, List[QuestionResult]] = {}
    for r in results:
        groups.setdefault(r.category, []).append(r)

    sections = []
    for category in sorted(groups):
        items = groups[category]
        found = sum(1 for r in items if r.found)
        sections.append({
            "category": category,
            "results": items,
            "found": found,
            "total": len(items),
            "rate": round_half_up(found / len(items) * 100),
        })
    return sections


def visibility_rate(results: Sequence[QuestionResult]) -> int:
    if not results:
        return 0
    found = sum(1 for r in results if r.found)
    return round_half_up(found / len(results) * 100)


def performance_label(rate: float) -> str:
    if rate >= ReportConstants.EXCELLENT_THRESHOLD:
        return "Excellent"
    if rate >= ReportConstants.GOOD_THRESHOLD:
        return "Good"
    if rate >= ReportConstants.NEEDS_WORK_THRESHOLD:
        return "Needs Work"
    return "Critical"


def _fmt(value: float) -> str:
    value = float(value)
    return str(int(value)) if value.is_integer() else f"{value:.1f}"


def _pick(rules: List[List[Any]], value: float, **fields) -> Optional[str]:
    for minimum, text in rules:
        if value >= minimum:
            return text.format(value=_fmt(value), **fields)
    return None


def build_conclusions(rate: int, metrics: Optional[GeoMetrics], zero_mention_count: int,
                      competitors: List[Tuple[str, int]], brand_name: str,
                      rules: Dict[str, List[List[Any]]]) -> List[str]:
    """Conclusion sentences, always in the same order for the same input."""
    brand = brand_name or "The brand"
    candidates = [_pick(rules["visibility_rate"], rate, brand=brand)]

    if metrics is not None:
        organic = metrics.brand_agnostic_metrics
        candidates.append(_pick(rules["organic_mention_rate"], organic.brand_mention_rate, brand=brand))
        candidates.append(_pick(rules["top_3_position_rate"], organic.top_3_position_rate, brand=brand))
        candidates.append(_pick(rules["recommendation_rate"], organic.recommendation_rate, brand=brand))
        candidates.append(_pick(
            rules["positive_sentiment_rate"], metrics.brand_included_metrics.positive_sentiment_rate, brand=brand,
        ))

    candidates.append(_pick(rules["zero_mention"], zero_mention_count, brand=brand))

    if competitors:
        name, count = competitors[0]
        candidates.append(_pick(rules["top_competitor"], count, brand=brand, competitor=name))

    return [c for c in candidates if c]


# --- sheets ---

def report_filename(domain: str, state: Optional[str], simple: bool = False) -> str:
    suffix = ReportConstants.SIMPLE_SUFFIX if simple else ReportConstants.COMPREHENSIVE_SUFFIX
    return f"{domain}_{state or ReportConstants.LOCAL_LABEL}_{suffix}"


def prepare_simple_report(results: Sequence[QuestionResult], domain: str, state: Optional[str]) -> ReportData:
    """Single-sheet export used when no metrics are involved."""
    rows = [
        {
            "Category": r.category,
            "Question": r.question,
            "Full Answer": r.full_answer,
            "Found (True/False)": "TRUE" if r.found else "FALSE",
        }
        for r in results
    ]
    return ReportData(
        filename=report_filename(domain, state, simple=True),
        sheets={ReportConstants.SHEET_SIMPLE: rows},
        columns={ReportConstants.SHEET_SIMPLE: SIMPLE_COLUMNS},
        visibility_rate=visibility_rate(results),
        performance=performance_label(visibility_rate(results)),
    )


def prepare_report(
    results: Sequence[QuestionResult],
    metrics: Optional[GeoMetrics],
    brand_name: str,
    domain: str,
    state: Optional[str] = None,
    nation: str = "",
    known_competitors: Optional[Sequence[str]] = None,
    rules: Optional[Dict[str, Any]] = None,
    generated_at: Optional[datetime] = None,
) -> ReportData:
    """Derive every sheet of the comprehensive report."""
    rules = rules or load_report_rules()
    if known_competitors is None:
        known_competitors = rules["known_competitors"]
    brand_name = brand_name or (metrics.brand_name if metrics else "")
    generated_at = generated_at or datetime.now()

    agnostic = brand_agnostic_results(results, brand_name)
    zero = zero_mention_results(results, brand_name)
    names = competitor_names(metrics, known_competitors)
    competitors = competitor_counts(results, names)
    rate = visibility_rate(results)
    label = performance_label(rate)
    answered = [r for r in results if r.has_answer]
    found_count = sum(1 for r in results if r.found)

    tracking = []
    for idx, r in enumerate(results, 1):
        row = {
            "#": idx,
            "Category": r.category,
            "Prompt": r.question,
            "Brand Agnostic": brand_agnostic_label(r, brand_name),
        }
        row.update(score_question(r))
        row["Notes"] = note_for(r)
        tracking.append(row)

    conclusions = build_conclusions(rate, metrics, len(zero), competitors, brand_name, rules["conclusions"])
    location = ", ".join(p for p in (state, nation) if p) or ReportConstants.LOCAL_LABEL
    summary = [
        {"Metric": "Brand", "Value": brand_name},
        {"Metric": "Domain", "Value": domain},
        {"Metric": "Location", "Value": location},
        {"Metric": "Report Generated", "Value": generated_at.strftime("%Y-%m-%d %H:%M")},
        {"Metric": "Total Questions", "Value": len(results)},
        {"Metric": "Answered Questions", "Value": len(answered)},
        {"Metric": "Brand Found", "Value": found_count},
        {"Metric": "Visibility Rate (%)", "Value": rate},
        {"Metric": "Performance", "Value": label},
        {"Metric": "Brand-Agnostic Prompts", "Value": len(agnostic)},
        {"Metric": "Zero-Mention Prompts", "Value": len(zero)},
    ]
    if metrics is not None:
        organic = metrics.brand_agnostic_metrics
        included = metrics.brand_included_metrics
        if metrics.created_at:
            summary.append({"Metric": "Metrics Calculated", "Value": metrics.created_at.strftime("%Y-%m-%d %H:%M")})
        summary.extend([
            {"Metric": "Prompts Scored by Backend", "Value": metrics.total_prompts},
            {"Metric": "Organic Mention Rate (%)", "Value": round(organic.brand_mention_rate, 1)},
            {"Metric": "Organic Top 3 Rate (%)", "Value": round(organic.top_3_position_rate, 1)},
            {"Metric": "Organic Recommendation Rate (%)", "Value": round(organic.recommendation_rate, 1)},
            {"Metric": "Brand-Included Mention Rate (%)", "Value": round(included.brand_mention_rate, 1)},
            {"Metric": "Brand-Included Top 3 Rate (%)", "Value": round(included.top_3_position_rate, 1)},
            {"Metric": "Positive Sentiment Rate (%)", "Value": round(included.positive_sentiment_rate, 1)},
            {"Metric": "Brand Features", "Value": ", ".join(metrics.brand_features)},
        ])
    summary.append({"Metric": "", "Value": ""})
    summary.append({"Metric": "Key Conclusions", "Value": ""})
    for idx, text in enumerate(conclusions, 1):
        summary.append({"Metric": f"{idx}.", "Value": text})

    zero_rows = []
    for idx, r in enumerate(zero, 1):
        mentioned = [name for name in names if contains_term(r.full_answer, name)]
        zero_rows.append({
            "#": idx,
            "Category": r.category,
            "Prompt": r.question,
            "AI Answer": r.full_answer,
            "Competitors Mentioned": ", ".join(mentioned),
        })

    competitor_rows = [
        {
            "Rank": idx,
            "Competitor": name,
            "Mentions": count,
            "Share of Answers (%)": round_half_up(count / len(answered) * 100) if answered else 0,
        }
        for idx, (name, count) in enumerate(competitors, 1)
    ]

    qna_rows = []
    for section in category_sections(results):
        qna_rows.append({
            "Category": f"{section['category']} ({section['found']}/{section['total']} found, {section['rate']}%)",
            "Question": "",
            "Full Answer": "",
            "Brand Found": "",
            "Notes": "",
        })
        for r in section["results"]:
            qna_rows.append({
                "Category": r.category,
                "Question": r.question,
                "Full Answer": r.full_answer,
                "Brand Found": brand_found_label(r),
                "Notes": note_for(r) if r.has_answer else "",
            })

    return ReportData(
        filename=report_filename(domain, state),
        sheets={
            ReportConstants.SHEET_PROMPT_TRACKING: tracking,
            ReportConstants.SHEET_SUMMARY: summary,
            ReportConstants.SHEET_ZERO_MENTION: zero_rows,
            ReportConstants.SHEET_COMPETITORS: competitor_rows,
            ReportConstants.SHEET_ALL_QNA: qna_rows,
        },
        columns={
            ReportConstants.SHEET_PROMPT_TRACKING: PROMPT_TRACKING_COLUMNS,
            ReportConstants.SHEET_SUMMARY: SUMMARY_COLUMNS,
            ReportConstants.SHEET_ZERO_MENTION: ZERO_MENTION_COLUMNS,
            ReportConstants.SHEET_COMPETITORS: COMPETITOR_COLUMNS,
            ReportConstants.SHEET_ALL_QNA: QNA_COLUMNS,
        },
        visibility_rate=rate,
        performance=label,
        brand_agnostic=agnostic,
        zero_mention=zero,
        competitors=competitors,
        conclusions=conclusions,
    )


def export_to_xlsx(report: ReportData) -> bytes:
    """Encode a report as an .xlsx workbook."""
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        for sheet_name, rows in report.sheets.items():
            columns = report.columns[sheet_name]
            df = pd.DataFrame(rows, columns=columns)
            df.to_excel(writer, index=False, sheet_name=sheet_name)

            # Fit column widths to content
            worksheet = writer.sheets[sheet_name]
            for idx, column in enumerate(columns, 1):
                lengths = [len(str(column))] + [len(str(row.get(column, ""))) for row in rows]
                width = min(ReportConstants.MAX_COLUMN_WIDTH, max(lengths) + 2)
                worksheet.column_dimensions[get_column_letter(idx)].width = width

    logger.info(f"Exported report {report.filename} ({len(report.sheets)} sheets)")
    return buffer.getvalue()


def build_report_file(
    results: Sequence[QuestionResult],
    metrics: Optional[GeoMetrics],
    brand_name: str,
    domain: str,
    state: Optional[str] = None,
    nation: str = "",
    simple: bool = False,
) -> Optional[Tuple[str, bytes]]:
    """File name and workbook bytes, or None when export is not possible yet."""
    if not results:
        logger.info("Export skipped: no results")
        return None
    if simple:
        report = prepare_simple_report(results, domain, state)
    else:
        if metrics is None:
            logger.info("Export skipped: no metrics snapshot")
            return None
        report = prepare_report(results, metrics, brand_name, domain, state, nation)
    return report.filename, export_to_xlsx(report)
