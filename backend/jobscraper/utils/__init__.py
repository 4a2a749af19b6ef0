"""Shared utilities for scrapers."""

from .normalizers import (
    clean_text,
    clean_title,
    relative_date_to_iso,
    normalize_posted_date,
    to_iso,
)
from .extractors import (
    select_first,
    select_text,
    extract_results_count,
    extract_page_state,
    extract_job_id,
    classify_caption_fragment,
    classify_preference,
    extract_skills,
    extract_industry,
)
from .polling import poll_until

__all__ = [
    'clean_text',
    'clean_title',
    'relative_date_to_iso',
    'normalize_posted_date',
    'to_iso',
    'select_first',
    'select_text',
    'extract_results_count',
    'extract_page_state',
    'extract_job_id',
    'classify_caption_fragment',
    'classify_preference',
    'extract_skills',
    'extract_industry',
    'poll_until',
]
