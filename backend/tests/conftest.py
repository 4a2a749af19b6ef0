"""
Pytest configuration and fixtures for Job Saver tests.
"""

import dataclasses
from typing import Dict, List, Optional

import pytest
from bs4 import BeautifulSoup
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from jobapi.commands import CommandBus
from jobapi.database import Base
from jobapi.store import JobStore
from jobscraper.base import NavigationError
from jobscraper.config import get_site_config
from jobscraper.crawlers.browser import ListMetrics
from jobscraper.sites.linkedin import LinkedInSite
from jobscraper.utils.extractors import select_first


# Create an in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

SEARCH_URL = "https://www.linkedin.com/jobs/search/?keywords=python"

# Every wait collapses to a single immediate check
NO_DELAYS = dict(
    scroll_start_pause=0,
    scroll_pause=0,
    scroll_reset_pause=0,
    card_settle_delay=0,
    card_interval_delay=0,
    page_settle_delay=0,
    detail_poll_interval=0,
    detail_timeout=0,
    page_load_poll_interval=0,
    page_load_timeout=0,
    watcher_settle_delay=0,
    watcher_ttl=5.0,
)


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database session for each test."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def store(db_session):
    return JobStore(session_factory=TestingSessionLocal)


@pytest.fixture
def bus(store, tmp_path):
    return CommandBus(store, export_dir=tmp_path / "exports")


@pytest.fixture(scope="function")
def client(bus):
    """Create a test client with the command bus override."""
    from jobapi.main import app, get_bus

    app.dependency_overrides[get_bus] = lambda: bus

    # Without the context manager the lifespan (and its browser) never starts
    test_client = TestClient(app)
    yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def fast_config():
    return dataclasses.replace(get_site_config('linkedin'), **NO_DELAYS)


@pytest.fixture
def site(fast_config):
    return LinkedInSite(fast_config)


# ============================================================
# HTML BUILDERS
# ============================================================

def card_html(job_id: str, title: str, company: Optional[str] = "Acme", location: str = "Austin, TX",
              link: bool = True, posted: Optional[str] = "2024-05-01", insight: Optional[str] = None) -> str:
    parts = [f'<li data-occludable-job-id="{job_id}"><div class="job-card-container" data-job-id="{job_id}">']
    if link:
        parts.append(
            f'<a class="job-card-container__link" aria-label="{title}" href="/jobs/view/{job_id}/?trk=search">'
            f'<span>{title}</span></a>'
        )
    else:
        parts.append(f'<span class="job-card-list__title--link">{title}</span>')
    if company is not None:
        parts.append(f'<div class="artdeco-entity-lockup__subtitle"><span>{company}</span></div>')
    parts.append(f'<ul class="job-card-container__metadata-wrapper"><li><span>{location}</span></li></ul>')
    if posted:
        parts.append(f'<time datetime="{posted}">2 days ago</time>')
    if insight:
        parts.append(f'<div class="job-card-container__job-insight-text">{insight}</div>')
    parts.append('</div></li>')
    return ''.join(parts)


def panel_html(title: str = "", company: str = "", caption: List[str] = (), preferences: List[str] = (),
               description: str = "", salary: str = "", company_section: str = "", insights: str = "",
               job_id: Optional[str] = None) -> str:
    fragments = ''.join(f'<span class="tvm__text">{text}</span>' for text in caption)
    pills = ''.join(f'<button><span class="tvm__text"><strong>{text}</strong></span></button>' for text in preferences)
    salary_html = f'<div id="SALARY">{salary}</div>' if salary else ''
    title_href = f"/jobs/view/{job_id}/" if job_id else "#"
    return (
        '<div class="jobs-search__job-details--container">'
        f'<div class="job-details-jobs-unified-top-card__job-title"><h1><a href="{title_href}">{title}</a></h1></div>'
        f'<div class="job-details-jobs-unified-top-card__company-name"><a href="#">{company}</a></div>'
        f'<div class="job-details-jobs-unified-top-card__tertiary-description-container">{fragments}</div>'
        f'<div class="job-details-fit-level-preferences">{pills}</div>'
        f'<div class="jobs-box__html-content" id="job-details">{description}</div>'
        f'{salary_html}{company_section}{insights}'
        '</div>'
    )


def results_html(cards: List[str], total_results: Optional[int], page_state: Optional[str], panel: str = "") -> str:
    subtitle = (
        f'<div class="jobs-search-results-list__subtitle"><span>{total_results:,} results</span></div>'
        if total_results is not None else ''
    )
    state = (
        f'<div class="jobs-search-pagination"><p class="jobs-search-pagination__page-state">{page_state}</p></div>'
        if page_state else ''
    )
    items = ''.join(cards)
    return (
        '<html><body>'
        '<div class="scaffold-layout__list">'
        f'<header class="scaffold-layout__list-header">{subtitle}</header>'
        f'<div class="jobs-search-results-list"><ul>{items}</ul>{state}</div>'
        '</div>'
        f'{panel}'
        '</body></html>'
    )


# ============================================================
# FAKE BROWSER
# ============================================================

class FakePage:
    """A results page (cards + optional detail panels per card) or a fixed document."""

    def __init__(self, cards: List[str] = (), total_results: Optional[int] = None,
                 page_state: Optional[str] = None, panels: Optional[Dict[int, str]] = None,
                 html: Optional[str] = None):
        self.cards = list(cards)
        self.total_results = total_results
        self.page_state = page_state
        self.panels = panels or {}
        self.html = html

    def render(self, selected: Optional[int]) -> str:
        if self.html is not None:
            return self.html
        panel = self.panels.get(selected, '') if selected is not None else ''
        return results_html(self.cards, self.total_results, self.page_state, panel)


class FakeCrawler:
    """Stands in for BrowserCrawler over a dict of URL -> FakePage."""

    EMPTY = '<html><body><p>Nothing here</p></body></html>'

    def __init__(self, pages: Dict[str, FakePage], url: str):
        self.pages = pages
        self.current_url = url
        self.is_started = True
        self.selected: Optional[int] = None

        self.visited: List[str] = []
        self.clicks: List[int] = []
        self.scrolled_cards: List[int] = []
        self.failing_urls = set()
        self.click_errors = set()
        self.on_click = None
        self.bindings = {}
        self.evaluated = []

    @property
    def page(self) -> Optional[FakePage]:
        return self.pages.get(self.current_url)

    def html(self) -> str:
        page = self.page
        return page.render(self.selected) if page else self.EMPTY

    def soup(self) -> BeautifulSoup:
        return BeautifulSoup(self.html(), 'html.parser')

    async def snapshot(self) -> BeautifulSoup:
        return self.soup()

    async def goto(self, url: str):
        self.visited.append(url)
        if url in self.failing_urls:
            raise NavigationError(f"Failed to navigate to {url}: net::ERR_FAILED")
        self.current_url = url
        self.selected = None

    async def any_present(self, selectors) -> bool:
        return select_first(self.soup(), selectors) is not None

    async def evaluate(self, script, arg=None):
        self.evaluated.append((script, arg))

    async def expose_function(self, name, callback):
        self.bindings[name] = callback

    async def measure_list(self, card_selector, container_selectors, scaffold_selector, boundary_selector):
        page = self.page
        if page is None or page.html is not None:
            return None
        return ListMetrics(card_count=len(page.cards), client_height=500.0, container_bottom=800.0)

    async def scroll_list_by(self, pixels, *args):
        return True

    async def scroll_list_to_top(self, *args):
        return True

    async def count_cards(self, card_selector) -> int:
        return len(self.soup().select(card_selector))

    async def has_card_link(self, card_selector, index, link_selector) -> bool:
        cards = self.soup().select(card_selector)
        return index < len(cards) and cards[index].select_one(link_selector) is not None

    async def scroll_card_into_view(self, card_selector, index):
        self.scrolled_cards.append(index)

    async def click_card(self, card_selector, index, link_selector):
        if index in self.click_errors:
            raise RuntimeError("Element is not attached to the DOM")
        self.clicks.append(index)
        self.selected = index
        if self.on_click is not None:
            self.on_click(index)


@pytest.fixture
def fake_crawler_factory():
    return FakeCrawler


@pytest.fixture
def fake_page_factory():
    return FakePage
