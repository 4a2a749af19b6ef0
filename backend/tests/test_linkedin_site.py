"""
Tests for LinkedIn page classification and extraction.
"""

from datetime import datetime, timezone

from bs4 import BeautifulSoup

from jobscraper.base import JobRecord, PageKind

from conftest import SEARCH_URL, card_html, panel_html, results_html


NOW = datetime(2024, 3, 31, 12, 0, 0, tzinfo=timezone.utc)

COMPANY_SECTION = (
    '<div class="jobs-company">'
    '<div class="artdeco-entity-lockup__title"><a href="#">Acme Corp</a></div>'
    '<div class="artdeco-entity-lockup__subtitle">12,345 followers</div>'
    '<div class="t-14 mt5">Software Development '
    '<span class="jobs-company__inline-information">1,001-5,000 employees</span> '
    '<span class="jobs-company__inline-information">2,345 on LinkedIn</span></div>'
    '<div class="jobs-company__company-description"><div class="text-body-small-open">'
    '<div dir="ltr">We build tools.</div></div></div>'
    '<div class="job-details-company__commitments-container">'
    '<div class="job-details-company__commitments-type"><h4>Work-life balance</h4></div>'
    '<p class="job-details-company__commitments-description">Flexible hours</p>'
    '<div class="job-details-company__commitments-type"><h4>Sustainability</h4></div>'
    '</div>'
    '</div>'
)

INSIGHTS = (
    '<div class="aiq-premium-insights-module-card__container--with-highchart-data">'
    '<div class="aiq-premium-insights-module-card__statistics-container">'
    '<span class="t-24 t-black t-bold">10%</span><span class="t-12 t-black--light">Senior level applicants</span>'
    '</div>'
    '<div class="aiq-premium-insights-module-card__statistics-container">'
    '<span class="t-24 t-black t-bold">3</span><span class="t-12 t-black--light">applicants in the past day</span>'
    '</div>'
    '</div>'
)


def soup_of(html):
    return BeautifulSoup(html, 'html.parser')


def first_card(site, html):
    return site.find_cards(soup_of(html))[0]


def basic_record(**overrides):
    values = dict(
        title="Engineer",
        company="Acme",
        location="Austin, TX",
        description="",
        url="https://www.linkedin.com/jobs/view/1/?trk=search",
        scraped_at="2024-03-31T12:00:00.000Z",
        posted_date="2024-05-01",
        posted_date_iso="2024-05-01T00:00:00.000Z",
    )
    values.update(overrides)
    return JobRecord(**values)


class ExplodingSoup:
    def select(self, *args, **kwargs):
        raise RuntimeError("detached document")


class TestClassify:
    """Test page classification."""

    def test_listing_by_path(self, site):
        assert site.classify(SEARCH_URL, soup_of("<html></html>")) == PageKind.LISTING

    def test_listing_by_probe(self, site):
        html = results_html([card_html("1", "Engineer")], 1, None)
        assert site.classify("https://www.linkedin.com/jobs/collections/recommended/", soup_of(html)) == PageKind.LISTING

    def test_detail_by_path(self, site):
        assert site.classify("https://www.linkedin.com/jobs/view/123/", soup_of("<html></html>")) == PageKind.DETAIL

    def test_detail_by_probe(self, site):
        html = '<div class="job-view-layout"></div>'
        assert site.classify("https://www.linkedin.com/feed/", soup_of(html)) == PageKind.DETAIL

    def test_unrecognized(self, site):
        assert site.classify("https://www.linkedin.com/feed/", soup_of("<p>Feed</p>")) == PageKind.UNRECOGNIZED

    def test_never_raises(self, site):
        assert site.classify("https://www.linkedin.com/feed/", ExplodingSoup()) == PageKind.UNRECOGNIZED


class TestExtractCard:
    """Test basic record extraction from listing cards."""

    def test_basic_fields(self, site):
        card = first_card(site, results_html([card_html("42", "Data Engineer", insight="Actively recruiting")], 1, None))
        record = site.extract_card(card, SEARCH_URL, NOW)

        assert record.title == "Data Engineer"
        assert record.company == "Acme"
        assert record.location == "Austin, TX"
        assert record.description == "Actively recruiting"
        assert record.url == "https://www.linkedin.com/jobs/view/42/?trk=search"
        assert record.scraped_at == "2024-03-31T12:00:00.000Z"
        assert record.posted_date == "2024-05-01"
        assert record.posted_date_iso == "2024-05-01T00:00:00.000Z"

    def test_title_prefers_aria_label(self, site):
        html = (
            '<li data-occludable-job-id="7"><div class="job-card-container" data-job-id="7">'
            '<a class="job-card-container__link" aria-label="Staff SRE with verification" href="/jobs/view/7/">'
            '<span>Staff SRE</span><span>with verification</span><span>Staff SRE</span></a>'
            '<div class="artdeco-entity-lockup__subtitle"><span>Acme</span></div>'
            '</div></li>'
        )
        record = site.extract_card(first_card(site, results_html([html], 1, None)), SEARCH_URL, NOW)
        assert record.title == "Staff SRE"

    def test_missing_company_is_rejected(self, site):
        card = first_card(site, results_html([card_html("1", "Engineer", company=None)], 1, None))
        assert site.extract_card(card, SEARCH_URL, NOW) is None

    def test_relative_posted_text(self, site):
        html = card_html("1", "Engineer", posted=None).replace('</div></li>', '<time>2 weeks ago</time></div></li>')
        record = site.extract_card(first_card(site, results_html([html], 1, None)), SEARCH_URL, NOW)
        assert record.posted_date == "2 weeks ago"
        assert record.posted_date_iso == "2024-03-17T12:00:00.000Z"

    def test_optional_fields_absent(self, site):
        card = first_card(site, results_html([card_html("1", "Engineer", posted=None)], 1, None))
        record = site.extract_card(card, SEARCH_URL, NOW)
        assert record.posted_date is None
        assert record.salary is None


class TestCardUrl:
    """Test the job URL fallback chain."""

    card_body = (
        '<span class="job-card-list__title--link">Engineer</span>'
        '<div class="artdeco-entity-lockup__subtitle"><span>Acme</span></div>'
    )

    def test_relative_link_resolved(self, site):
        card = first_card(site, results_html([card_html("5", "Engineer")], 1, None))
        assert site.extract_card(card, SEARCH_URL, NOW).url.startswith("https://www.linkedin.com/jobs/view/5/")

    def test_card_job_id(self, site):
        card = first_card(site, results_html([card_html("5", "Engineer", link=False)], 1, None))
        assert site.extract_card(card, SEARCH_URL, NOW).url == "https://www.linkedin.com/jobs/view/5/"

    def test_list_item_job_id(self, site):
        html = f'<li data-occludable-job-id="9"><div class="job-card-container">{self.card_body}</div></li>'
        card = first_card(site, results_html([html], 1, None))
        assert site.extract_card(card, SEARCH_URL, NOW).url == "https://www.linkedin.com/jobs/view/9/"

    def test_job_id_from_view_location(self, site):
        card = soup_of(f'<div class="job-card-container">{self.card_body}</div>').div
        record = site.extract_card(card, "https://www.linkedin.com/jobs/view/77/?refId=abc", NOW)
        assert record.url == "https://www.linkedin.com/jobs/view/77/"

    def test_current_location_as_last_resort(self, site):
        card = soup_of(f'<div class="job-card-container">{self.card_body}</div>').div
        assert site.extract_card(card, SEARCH_URL, NOW).url == SEARCH_URL


class TestDetailPanel:
    """Test enrichment from the open detail panel."""

    def panel_soup(self, **kwargs):
        defaults = dict(
            title="Senior Data Engineer",
            company="Acme Corp",
            caption=["Austin, TX", "·", "3 days ago", "·", "Over 100 applicants", "Remote, US"],
            preferences=["Remote", "Full-time", "On-site"],
            description="About the job<br/>Skills: Python<br/>Go",
            salary="$120K/yr - $150K/yr",
            company_section=COMPANY_SECTION,
            insights=INSIGHTS,
        )
        defaults.update(kwargs)
        return soup_of(results_html([card_html("1", "Engineer")], 1, None, panel_html(**defaults)))

    def test_all_fields(self, site):
        record = site.extract_detail_panel(self.panel_soup(), basic_record(), NOW)

        assert record.title == "Senior Data Engineer"
        assert record.company == "Acme Corp"
        assert record.location == "Austin, TX"
        assert record.posted_date == "3 days ago"
        assert record.posted_date_iso == "2024-03-28T12:00:00.000Z"
        assert record.applicant_count == "Over 100 applicants"
        assert record.workplace_type == "Remote"
        assert record.job_type == "Full-time"
        assert record.description == "About the job Skills: Python Go"
        assert record.skills == "Skills: Python Go"
        assert record.salary == "$120K/yr - $150K/yr"
        assert record.followers == "12,345 followers"
        assert record.industry == "Software Development"
        assert record.company_size == "1,001-5,000 employees"
        assert record.linkedin_employees == "2,345 on LinkedIn"
        assert record.company_description == "We build tools."
        assert record.company_commitments == "Work-life balance: Flexible hours; Sustainability"
        assert record.hiring_insights == "10% Senior level applicants; 3 applicants in the past day"

    def test_keeps_url_and_capture_time(self, site):
        basic = basic_record()
        record = site.extract_detail_panel(self.panel_soup(), basic, NOW)
        assert record.url == basic.url
        assert record.scraped_at == basic.scraped_at

    def test_empty_panel_title_keeps_card_title(self, site):
        soup = self.panel_soup(title="", company="", company_section="")
        record = site.extract_detail_panel(soup, basic_record(), NOW)
        assert record.title == "Engineer"
        assert record.company == "Acme"

    def test_missing_container_returns_basic(self, site):
        basic = basic_record()
        soup = soup_of(results_html([card_html("1", "Engineer")], 1, None))
        assert site.extract_detail_panel(soup, basic, NOW) is basic

    def test_absent_sections_stay_none(self, site):
        soup = self.panel_soup(caption=[], preferences=[], salary="", company_section="", insights="")
        record = site.extract_detail_panel(soup, basic_record(), NOW)
        assert record.location == "Austin, TX"
        assert record.workplace_type is None
        assert record.salary is None
        assert record.hiring_insights is None
        assert record.posted_date_iso == "2024-05-01T00:00:00.000Z"


class TestDetailPage:
    """Test extraction from a standalone job page."""

    html = (
        '<div class="job-view-layout">'
        '<div class="job-details-jobs-unified-top-card__job-title"><h1>Platform Engineer</h1></div>'
        '<div class="job-details-jobs-unified-top-card__company-name"><a href="#">Globex</a></div>'
        '<span class="job-details-jobs-unified-top-card__bullet">Denver, CO</span>'
        '<div class="job-details-jobs-unified-top-card__job-description">Build the platform.</div>'
        '<div class="job-details-jobs-unified-top-card__job-insight">$140K/yr</div>'
        '</div>'
    )
    url = "https://www.linkedin.com/jobs/view/555/"

    def test_fields(self, site):
        record = site.extract_detail_page(soup_of(self.html), self.url, NOW)
        assert record.title == "Platform Engineer"
        assert record.company == "Globex"
        assert record.location == "Denver, CO"
        assert record.description == "Build the platform."
        assert record.salary == "$140K/yr"
        assert record.url == self.url

    def test_missing_title_is_rejected(self, site):
        html = self.html.replace("Platform Engineer", "")
        assert site.extract_detail_page(soup_of(html), self.url, NOW) is None

    def test_caption_and_preferences(self, site):
        extra = (
            '<div class="job-details-jobs-unified-top-card__tertiary-description-container">'
            '<span class="tvm__text">Denver, CO</span><span class="tvm__text">2 days ago</span>'
            '<span class="tvm__text">Over 100 applicants</span></div>'
            '<div class="job-details-fit-level-preferences">'
            '<button><span class="tvm__text"><strong>Hybrid</strong></span></button>'
            '<button><span class="tvm__text"><strong>Full-time</strong></span></button></div>'
        )
        html = self.html.replace(
            '<div class="job-details-jobs-unified-top-card__job-description">',
            extra + '<div class="job-details-jobs-unified-top-card__job-description">',
        )

        record = site.extract_detail_page(soup_of(html), self.url, NOW)

        assert record.location == "Denver, CO"
        assert record.posted_date == "2 days ago"
        assert record.posted_date_iso == "2024-03-29T12:00:00.000Z"
        assert record.applicant_count == "Over 100 applicants"
        assert record.workplace_type == "Hybrid"
        assert record.job_type == "Full-time"

    def test_caption_location_used_without_bullet(self, site):
        html = self.html.replace('<span class="job-details-jobs-unified-top-card__bullet">Denver, CO</span>', (
            '<div class="job-details-jobs-unified-top-card__tertiary-description-container">'
            '<span class="tvm__text">Boulder, CO</span></div>'
        ))

        record = site.extract_detail_page(soup_of(html), self.url, NOW)

        assert record.location == "Boulder, CO"
        assert record.posted_date is None
        assert record.job_type is None


class TestPanelShows:
    """Test recognition of the panel belonging to a clicked card."""

    def soup(self, **panel):
        return soup_of(results_html([card_html("1", "Engineer")], 1, None, panel_html(**panel)))

    def test_no_panel(self, site):
        soup = soup_of(results_html([card_html("1", "Engineer")], 1, None))
        # Cards carry data-job-id too; they are not a panel
        assert site.panel_shows(soup, basic_record()) is False

    def test_matching_job_id(self, site):
        assert site.panel_shows(self.soup(title="Engineer (Remote)", job_id="1"), basic_record()) is True

    def test_other_job_id(self, site):
        assert site.panel_shows(self.soup(title="Engineer", job_id="2"), basic_record()) is False

    def test_title_match_without_ids(self, site):
        assert site.panel_shows(self.soup(title="Engineer with verification"), basic_record()) is True

    def test_title_mismatch_without_ids(self, site):
        assert site.panel_shows(self.soup(title="Designer"), basic_record()) is False

    def test_card_without_job_id_compares_titles(self, site):
        basic = basic_record(url=SEARCH_URL)
        assert site.panel_shows(self.soup(title="Engineer", job_id="7"), basic) is True
