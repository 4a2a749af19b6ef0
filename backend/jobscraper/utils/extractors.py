"""
Data extraction utilities for scrapers.

These functions pull specific values out of rendered text and element
trees using regex patterns and ordered selector fallbacks.
"""

import re
from typing import Optional, List, Tuple, Union
from bs4 import BeautifulSoup, Tag

from .normalizers import clean_text


Selectors = Union[str, List[str]]

WORKPLACE_TYPES = ['On-site', 'Remote', 'Hybrid']
JOB_TYPES = ['Full-time', 'Part-time', 'Contract', 'Internship', 'Temporary']
SKILLS_KEYWORDS = ['Skills:', 'Technologies:', 'Requirements:', 'Technical Skills:']
LOCATION_MARKERS = ['Territory', 'State', 'City']


def select_first(root: Union[BeautifulSoup, Tag], selectors: Selectors, require_text: bool = False) -> Optional[Tag]:
    """
    Return the first element matching any selector, trying them in order.

    Args:
        root: Element tree to search
        selectors: One CSS selector or an ordered list of fallbacks
        require_text: Skip matches whose text is empty

    Returns:
        Matching element or None
    """
    if root is None or not selectors:
        return None
    if isinstance(selectors, str):
        selectors = [selectors]

    for selector in selectors:
        for element in root.select(selector):
            if not require_text or element.get_text(strip=True):
                return element
    return None


def select_text(root: Union[BeautifulSoup, Tag], selectors: Selectors) -> str:
    """Cleaned text of the first matching element that has any, else ''."""
    element = select_first(root, selectors, require_text=True)
    return clean_text(element.get_text(' ')) if element else ''


def extract_results_count(text: str) -> int:
    """
    Extract the total result count from a results subtitle.

    Examples:
        "1,234 results" -> 1234
        "1 result" -> 1
        "" -> 0
    """
    if not text:
        return 0
    match = re.search(r'(\d{1,3}(?:,\d{3})*|\d+)\s*results?', text, re.IGNORECASE)
    if match:
        return int(match.group(1).replace(',', ''))
    return 0


def extract_page_state(text: str) -> Tuple[Optional[int], Optional[int]]:
    """
    Extract current and total page numbers from a page indicator.

    Examples:
        "Page 3 of 40" -> (3, 40)
        "" -> (None, None)

    Returns:
        Tuple of (current_page, total_pages)
    """
    if not text:
        return None, None
    match = re.search(r'Page\s+(\d+)\s+of\s+(\d+)', text, re.IGNORECASE)
    if match:
        return int(match.group(1)), int(match.group(2))
    return None, None


def extract_job_id(url: str) -> Optional[str]:
    """
    Extract the numeric job id from a job URL.

    Examples:
        "https://www.linkedin.com/jobs/view/3912345678/?trk=x" -> "3912345678"
        "https://www.linkedin.com/jobs/search/?currentJobId=42" -> "42"
    """
    if not url:
        return None
    match = re.search(r'/jobs/view/(\d+)', url)
    if match:
        return match.group(1)
    match = re.search(r'[?&]currentJobId=(\d+)', url)
    if match:
        return match.group(1)
    return None


def classify_caption_fragment(text: str) -> Optional[str]:
    """
    Decide which field a caption fragment of the detail panel holds.

    A fragment is a posted date, an applicant count or a location; the
    first marker that matches wins.

    Examples:
        "Reposted 3 days ago" -> "posted_date"
        "Over 100 applicants" -> "applicant_count"
        "Austin, TX" -> "location"
        "Chicago, IL" -> "location"
        "Promoted by hirer" -> None
    """
    if not text:
        return None
    # Whole word so "Chicago" stays a location
    if re.search(r'\bago\b', text):
        return 'posted_date'
    if 'applicant' in text:
        return 'applicant_count'
    if any(marker in text for marker in LOCATION_MARKERS) or ',' in text:
        return 'location'
    return None


def classify_preference(text: str) -> Optional[str]:
    """
    Decide whether a preference pill holds a workplace type or a job type.

    Examples:
        "Remote" -> "workplace_type"
        "Full-time" -> "job_type"
    """
    if not text:
        return None
    if any(kind in text for kind in WORKPLACE_TYPES):
        return 'workplace_type'
    if any(kind in text for kind in JOB_TYPES):
        return 'job_type'
    return None


def extract_skills(description: str, window: int = 500) -> Optional[str]:
    """
    Extract the skills passage that follows a skills heading in a description.

    Args:
        description: Job description text
        window: Number of characters to keep after the heading

    Returns:
        Cleaned skills passage or None
    """
    if not description:
        return None
    for keyword in SKILLS_KEYWORDS:
        index = description.find(keyword)
        if index != -1:
            section = description[index:index + window]
            lines = section.split('\n')[:3]
            return clean_text(' '.join(lines)) or None
    return None


def extract_industry(info_text: str) -> Optional[str]:
    """
    Extract the industry from a company info line.

    Examples:
        "Software Development 1,001-5,000 employees 2,345 on LinkedIn"
            -> "Software Development"
        "Banking" -> "Banking"
    """
    if not info_text or not info_text.strip():
        return None
    head = re.split(r'\s+(?=[\d,]+(?:-[\d,]+)?\+?\s+employees)', info_text.strip())[0]
    return clean_text(head) or None
