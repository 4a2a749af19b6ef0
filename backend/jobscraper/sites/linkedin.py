"""
LinkedIn job search extraction.

Turns the rendered search results page, its detail panel and standalone
job pages into JobRecords. Every method is a pure function of a
BeautifulSoup tree and the supplied clock; the browser is never touched
here.
"""

import dataclasses
from datetime import datetime
from typing import List, Optional, Dict
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Tag

from ..base import BaseJobSite, JobRecord, PageKind, SiteConfig
from ..config import get_site_config
from ..utils.normalizers import clean_text, clean_title, normalize_posted_date, relative_date_to_iso, to_iso
from ..utils.extractors import (
    select_first,
    select_text,
    extract_job_id,
    classify_caption_fragment,
    classify_preference,
    extract_skills,
    extract_industry,
)


class LinkedInSite(BaseJobSite):
    """Extraction rules for linkedin.com/jobs."""

    def __init__(self, config: Optional[SiteConfig] = None):
        super().__init__(config or get_site_config('linkedin'))
        self.selectors = self.config.selectors

    # ============================================================
    # CLASSIFICATION
    # ============================================================

    def classify(self, url: str, soup: BeautifulSoup) -> PageKind:
        try:
            path = urlparse(url or '').path
            if self.selectors['listing_path'] in path or select_first(soup, self.selectors['listing_probe']):
                return PageKind.LISTING
            if self.selectors['detail_path'] in path or select_first(soup, self.selectors['detail_probe']):
                return PageKind.DETAIL
        except Exception as e:
            self.logger.warning(f"Page classification failed for {url}: {e}")
        return PageKind.UNRECOGNIZED

    def find_cards(self, soup: BeautifulSoup) -> List[Tag]:
        return soup.select(self.selectors['card'])

    # ============================================================
    # LISTING CARDS
    # ============================================================

    def _card_url(self, card: Tag, page_url: str) -> str:
        """
        Resolve a card's job URL.

        Fallback order: the card's /jobs/view/ link, a job id attribute on
        the card or its list item, the job id in the current location, and
        finally the current location itself.
        """
        link = card.select_one(self.selectors['card_link'])
        if link and link.get('href'):
            return urljoin(self.config.base_url, link['href'])

        job_id = card.get('data-job-id')
        if not job_id:
            item = card.find_parent('li', attrs={'data-occludable-job-id': True})
            if item:
                job_id = item.get('data-occludable-job-id')
        if job_id:
            return self.config.job_view_url.format(job_id=job_id)

        if page_url and self.selectors['detail_path'] in page_url:
            job_id = extract_job_id(page_url)
            if job_id:
                return self.config.job_view_url.format(job_id=job_id)

        return page_url or ''

    def extract_card(self, card: Tag, page_url: str, now: datetime) -> Optional[JobRecord]:
        try:
            title_element = select_first(card, self.selectors['card_title'])
            raw_title = ''
            if title_element:
                raw_title = (title_element.get('aria-label') or '').strip() or title_element.get_text(' ')
            title = clean_title(raw_title, self.config.max_title_length)

            company = select_text(card, self.selectors['card_company'])

            if not title or not company:
                self.logger.debug(f"Skipping card, missing title or company: title='{title}' company='{company}'")
                return None

            time_element = card.select_one(f"{self.selectors['card_posted']}[datetime]")
            if time_element:
                posted = clean_text(time_element['datetime'])
            else:
                posted = select_text(card, self.selectors['card_posted'])

            return JobRecord(
                title=title,
                company=company,
                location=select_text(card, self.selectors['card_location']),
                description=select_text(card, self.selectors['card_insight']),
                url=self._card_url(card, page_url),
                scraped_at=to_iso(now),
                posted_date=posted or None,
                posted_date_iso=normalize_posted_date(posted, now),
            )
        except Exception as e:
            self.logger.warning(f"Error extracting card: {e}")
            return None

    # ============================================================
    # STANDALONE DETAIL PAGE
    # ============================================================

    def extract_detail_page(self, soup: BeautifulSoup, url: str, now: datetime) -> Optional[JobRecord]:
        try:
            title = clean_title(select_text(soup, self.selectors['page_title']), self.config.max_title_length)
            company = select_text(soup, self.selectors['page_company'])

            if not title or not company:
                self.logger.debug(f"Detail page missing title or company: {url}")
                return None

            # Same caption line and preference pills as the panel
            fields: Dict[str, Optional[str]] = {}
            fields.update(self._caption_fields(soup, now))
            fields.update(self._preference_fields(soup))

            location = select_text(soup, self.selectors['page_location'])
            if location:
                fields['location'] = location

            return JobRecord(
                title=title,
                company=company,
                location=fields.pop('location', ''),
                description=select_text(soup, self.selectors['page_description']),
                url=url,
                scraped_at=to_iso(now),
                salary=select_text(soup, self.selectors['page_salary']) or None,
                **fields,
            )
        except Exception as e:
            self.logger.warning(f"Error extracting detail page {url}: {e}")
            return None

    # ============================================================
    # DETAIL PANEL ENRICHMENT
    # ============================================================

    def _caption_fields(self, container: Tag, now: datetime) -> Dict[str, str]:
        """Location, posted date and applicant count from the caption line; first match per field wins."""
        caption = select_first(container, self.selectors['detail_caption'])
        if not caption:
            return {}

        found: Dict[str, str] = {}
        for fragment in caption.select(self.selectors['detail_caption_fragment']):
            text = clean_text(fragment.get_text(' '))
            kind = classify_caption_fragment(text)
            if kind and kind not in found:
                found[kind] = text

        if 'posted_date' in found:
            found['posted_date_iso'] = relative_date_to_iso(found['posted_date'], now)
        return found

    def _preference_fields(self, container: Tag) -> Dict[str, str]:
        section = select_first(container, self.selectors['detail_preferences'])
        if not section:
            return {}

        found: Dict[str, str] = {}
        for item in section.select(self.selectors['detail_preference_item']):
            text = clean_text(item.get_text(' '))
            kind = classify_preference(text)
            if kind and kind not in found:
                found[kind] = text
        return found

    def _description_fields(self, container: Tag) -> Dict[str, str]:
        element = select_first(container, self.selectors['detail_description'], require_text=True)
        if not element:
            return {}

        raw = element.get_text('\n')
        found = {'description': clean_text(raw)}
        skills = extract_skills(raw)
        if skills:
            found['skills'] = skills
        return found

    def _company_fields(self, container: Tag) -> Dict[str, str]:
        section = select_first(container, self.selectors['company_section'])
        if not section:
            return {}

        found: Dict[str, str] = {}

        name = select_text(section, self.selectors['company_name'])
        if name:
            found['company'] = name

        subtitle = select_text(section, self.selectors['company_followers'])
        if 'followers' in subtitle:
            found['followers'] = subtitle

        info = select_text(section, self.selectors['company_info'])
        if info:
            industry = extract_industry(info)
            if industry:
                found['industry'] = industry

            inline = [clean_text(span.get_text(' ')) for span in section.select(self.selectors['company_inline'])]
            if inline and 'employees' in inline[0]:
                found['company_size'] = inline[0]
            if len(inline) > 1 and 'LinkedIn' in inline[1]:
                found['linkedin_employees'] = inline[1]

        about = select_text(section, self.selectors['company_description'])
        if about:
            found['company_description'] = about

        commitments_section = select_first(section, self.selectors['commitments'])
        if commitments_section:
            types = commitments_section.select(self.selectors['commitment_type'])
            descriptions = commitments_section.select(self.selectors['commitment_description'])
            commitments = []
            for i, type_element in enumerate(types):
                kind = clean_text(type_element.get_text(' '))
                if not kind:
                    continue
                detail = clean_text(descriptions[i].get_text(' ')) if i < len(descriptions) else ''
                commitments.append(f"{kind}: {detail}" if detail else kind)
            if commitments:
                found['company_commitments'] = '; '.join(commitments)

        return found

    def _insight_fields(self, container: Tag) -> Dict[str, str]:
        section = select_first(container, self.selectors['insights'])
        if not section:
            return {}

        insights = []
        for stat in section.select(self.selectors['insight_stat']):
            value = select_text(stat, self.selectors['insight_value'])
            label = select_text(stat, self.selectors['insight_label'])
            if value and label:
                insights.append(f"{value} {label}")
        return {'hiring_insights': '; '.join(insights)} if insights else {}

    def panel_shows(self, soup: BeautifulSoup, basic: JobRecord) -> bool:
        """
        Check whether the detail panel is showing the job of `basic`.

        Job ids are compared when both the card URL and the panel's title link
        carry one; otherwise the cleaned panel title must equal the card title.
        """
        try:
            container = select_first(soup, self.selectors['detail_container'])
            if not container:
                return False

            link = container.select_one(self.selectors['detail_job_link'])
            panel_id = extract_job_id(link['href']) if link and link.get('href') else None
            card_id = extract_job_id(basic.url)
            if panel_id and card_id:
                return panel_id == card_id

            title = clean_title(select_text(container, self.selectors['detail_title']), self.config.max_title_length)
            return bool(title) and title == basic.title
        except Exception as e:
            self.logger.warning(f"Could not read detail panel for '{basic.title}': {e}")
            return False

    def extract_detail_panel(self, soup: BeautifulSoup, basic: JobRecord, now: datetime) -> JobRecord:
        try:
            container = select_first(soup, self.selectors['detail_container'])
            if not container:
                self.logger.debug("Detail container not found, keeping card data")
                return basic

            updates: Dict[str, Optional[str]] = {}

            title = clean_title(select_text(container, self.selectors['detail_title']), self.config.max_title_length)
            if title:
                updates['title'] = title

            company = select_text(container, self.selectors['detail_company'])
            if company:
                updates['company'] = company

            updates.update(self._caption_fields(container, now))
            updates.update(self._preference_fields(container))
            updates.update(self._description_fields(container))
            updates.update(self._company_fields(container))
            updates.update(self._insight_fields(container))

            salary = select_text(container, self.selectors['detail_salary'])
            if salary:
                updates['salary'] = salary

            return dataclasses.replace(basic, **updates)
        except Exception as e:
            self.logger.warning(f"Error extracting detail panel for '{basic.title}': {e}")
            return basic
