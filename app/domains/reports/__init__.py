from app.domains.reports.aggregation import (
    numeric_summary, checkbox_tally, template_results, build_csv, csv_filename
)
from app.domains.reports.schemas import NumericSummary, RawAnswers, CheckboxTally, TemplateResults

__all__ = [
    "numeric_summary", "checkbox_tally", "template_results", "build_csv", "csv_filename",
    "NumericSummary", "RawAnswers", "CheckboxTally", "TemplateResults"
]
