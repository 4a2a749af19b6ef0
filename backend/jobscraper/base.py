"""
Base classes for the job scraping engine.

This module defines the data structures shared by every component of a
scrape run and the abstract base class that site-specific extractors
implement.
"""

from abc import ABC, abstractmethod
from typing import List, Dict, Optional, Any, Tuple
from dataclasses import dataclass, field, fields
from enum import Enum
from datetime import datetime, timezone
import logging

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

# ANSI color codes for terminal output
class Colors:
    """ANSI color codes for colorized logging."""
    RESET = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'

    # Colors
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    BLUE = '\033[94m'
    CYAN = '\033[96m'
    GRAY = '\033[90m'

    @staticmethod
    def green(text):
        return f"{Colors.GREEN}{text}{Colors.RESET}"

    @staticmethod
    def yellow(text):
        return f"{Colors.YELLOW}{text}{Colors.RESET}"

    @staticmethod
    def red(text):
        return f"{Colors.RED}{text}{Colors.RESET}"

    @staticmethod
    def blue(text):
        return f"{Colors.BLUE}{text}{Colors.RESET}"

    @staticmethod
    def cyan(text):
        return f"{Colors.CYAN}{text}{Colors.RESET}"

    @staticmethod
    def gray(text):
        return f"{Colors.GRAY}{text}{Colors.RESET}"

    @staticmethod
    def bold(text):
        return f"{Colors.BOLD}{text}{Colors.RESET}"


# ============================================================
# EXCEPTIONS
# ============================================================

class ScraperError(Exception):
    """Base class for scraper errors."""


class NavigationError(ScraperError):
    """Raised when the browser could not move to another page."""


class BrowserNotReadyError(ScraperError):
    """Raised when an interaction is attempted before the browser is started."""


# ============================================================
# ENUMS
# ============================================================

class PageKind(Enum):
    """Classification of the page the browser is currently showing."""
    LISTING = "listing"             # Search results with cards
    DETAIL = "detail"               # Standalone single job page
    UNRECOGNIZED = "unrecognized"   # Anything else


class RunState(Enum):
    """Lifecycle of a scrape run."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    STOPPED = "stopped"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        return self in (RunState.COMPLETED, RunState.STOPPED, RunState.ABORTED)


# ============================================================
# DATA MODEL
# ============================================================

@dataclass
class SiteConfig:
    """Configuration for a job listing site."""
    name: str                           # Full display name
    short_name: str                     # Logger / source identifier
    base_url: str                       # For resolving relative links
    job_view_url: str                   # Template with {job_id}
    page_size: int = 25                 # Fixed results per page on the site
    page_param: str = 'start'           # Query parameter holding the offset
    selectors: Dict[str, Any] = field(default_factory=dict)  # CSS selectors

    # Run thresholds
    low_yield_threshold: int = 5        # Fewer new records than this = low yield
    max_low_yield_pages: int = 3        # Consecutive low-yield pages before abort
    max_title_length: int = 2000

    # Lazy loading
    max_scroll_attempts: int = 20
    stable_reads: int = 3
    boundary_margin_px: int = 100
    scroll_fraction: float = 0.8
    scroll_pause: float = 3.0
    scroll_start_pause: float = 1.0     # After the initial scroll to top
    scroll_reset_pause: float = 1.5     # After the final scroll back to top

    # Delays and polls (seconds)
    card_settle_delay: float = 0.5      # After scrolling a card into view
    card_interval_delay: float = 2.0    # Between cards
    page_settle_delay: float = 3.0      # After navigating to the next page
    detail_poll_interval: float = 0.3
    detail_timeout: float = 8.0
    page_load_poll_interval: float = 0.5
    page_load_timeout: float = 10.0

    # Change watcher
    watcher_ttl: float = 30.0
    watcher_settle_delay: float = 1.0

    enabled: bool = True


# Python attribute -> wire key used by the command bus and the store
WIRE_KEYS = {
    'title': 'title',
    'company': 'company',
    'location': 'location',
    'description': 'description',
    'url': 'url',
    'scraped_at': 'scrapedAt',
    'salary': 'salary',
    'job_type': 'jobType',
    'experience': 'experience',
    'workplace_type': 'workplaceType',
    'applicant_count': 'applicantCount',
    'company_size': 'companySize',
    'linkedin_employees': 'linkedinEmployees',
    'industry': 'industry',
    'followers': 'followers',
    'hiring_insights': 'hiringInsights',
    'skills': 'skills',
    'company_description': 'companyDescription',
    'company_commitments': 'companyCommitments',
    'posted_date': 'postedDate',
    'posted_date_iso': 'postedDateISO',
}


@dataclass(frozen=True)
class JobRecord:
    """One scraped job listing."""
    title: str
    company: str
    location: str
    description: str
    url: str
    scraped_at: str                     # ISO-8601 capture timestamp

    # Enrichment fields (None when the page did not show them)
    salary: Optional[str] = None
    job_type: Optional[str] = None
    experience: Optional[str] = None
    workplace_type: Optional[str] = None
    applicant_count: Optional[str] = None
    company_size: Optional[str] = None
    linkedin_employees: Optional[str] = None
    industry: Optional[str] = None
    followers: Optional[str] = None
    hiring_insights: Optional[str] = None
    skills: Optional[str] = None
    company_description: Optional[str] = None
    company_commitments: Optional[str] = None
    posted_date: Optional[str] = None   # Raw string as rendered
    posted_date_iso: Optional[str] = None

    @property
    def key(self) -> Tuple[str, str, str]:
        """Identity key: two records with the same key are the same listing."""
        return (self.title, self.company, self.url)

    def to_dict(self) -> Dict[str, str]:
        """Serialize to the wire form, omitting absent optional fields."""
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            data[WIRE_KEYS[f.name]] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'JobRecord':
        """Build a record from its wire form (unknown keys are ignored)."""
        reverse = {wire: attr for attr, wire in WIRE_KEYS.items()}
        kwargs = {}
        for wire, value in data.items():
            attr = reverse.get(wire)
            if attr is None or value is None or value == '':
                continue
            kwargs[attr] = str(value)
        for required in ('title', 'company', 'location', 'description', 'url', 'scraped_at'):
            kwargs.setdefault(required, '')
        return cls(**kwargs)


@dataclass(frozen=True)
class PaginationState:
    """Pagination view of the current results page. Recomputed on every read."""
    current_page: int
    total_pages: int
    total_results: int
    calculated_pages: int


@dataclass
class ScrapeResult:
    """Result of a scrape run."""
    source: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    state: RunState = RunState.IDLE
    page_kind: Optional[PageKind] = None
    pages: int = 0
    accepted: int = 0
    duplicates: int = 0
    rejected: int = 0
    errors: int = 0
    error_details: List[Dict] = field(default_factory=list)
    notice: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.errors == 0

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.completed_at and self.started_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> Dict:
        return {
            'source': self.source,
            'state': self.state.value,
            'page_kind': self.page_kind.value if self.page_kind else None,
            'started_at': self.started_at.isoformat(),
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'duration_seconds': self.duration_seconds,
            'pages': self.pages,
            'accepted': self.accepted,
            'duplicates': self.duplicates,
            'rejected': self.rejected,
            'errors': self.errors,
            'error_details': self.error_details[:10],  # Limit error details
            'notice': self.notice,
            'success': self.success,
        }


def utc_now() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


# ============================================================
# SITE BASE CLASS
# ============================================================

class BaseJobSite(ABC):
    """
    Abstract base class for site-specific extraction.

    Subclasses own every piece of knowledge about a site's markup:
    - classify(): decide what kind of page is showing
    - extract_card(): turn one listing card into a basic record
    - extract_detail_page(): turn a standalone job page into a record
    - panel_shows(): tell whether the detail panel has switched to a card
    - extract_detail_panel(): enrich a basic record from the open detail panel

    All methods are pure functions of the element tree and the supplied
    clock. They must not raise; failures are logged and reported as None
    (or the input record, for enrichment).
    """

    def __init__(self, config):
        """
        Initialize the site.

        Args:
            config: Site configuration (selectors, page size, delays)
        """
        self.config = config
        self.logger = logging.getLogger(f"scraper.{config.short_name}")

    @abstractmethod
    def classify(self, url: str, soup: BeautifulSoup) -> PageKind:
        """
        Classify the current page.

        Args:
            url: Current browser location
            soup: Snapshot of the rendered document

        Returns:
            PageKind (UNRECOGNIZED on any failure)
        """
        pass

    @abstractmethod
    def find_cards(self, soup: BeautifulSoup) -> List[Tag]:
        """Return listing card elements in document order."""
        pass

    @abstractmethod
    def extract_card(self, card: Tag, page_url: str, now: datetime) -> Optional[JobRecord]:
        """
        Extract a basic record from a listing card.

        Returns:
            JobRecord, or None when title or company is missing
        """
        pass

    @abstractmethod
    def extract_detail_page(self, soup: BeautifulSoup, url: str, now: datetime) -> Optional[JobRecord]:
        """Extract a record from a standalone job detail page."""
        pass

    @abstractmethod
    def panel_shows(self, soup: BeautifulSoup, basic: JobRecord) -> bool:
        """Return True once the detail panel displays the job of `basic`."""
        pass

    @abstractmethod
    def extract_detail_panel(self, soup: BeautifulSoup, basic: JobRecord, now: datetime) -> JobRecord:
        """
        Enrich a basic record from the detail panel of a results page.

        Returns:
            Enriched record, or `basic` unchanged when the panel is missing
        """
        pass
