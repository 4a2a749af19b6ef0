"""
CSV export of saved jobs.

One row per job, 21 fixed columns, minimal RFC 4180 quoting and "\\n" row
separators. Values are written as stored so descriptions keep their line
breaks.
"""

import csv
import io
import logging
from datetime import date
from pathlib import Path
from typing import Iterable, List, Optional, Union

from jobscraper.base import JobRecord

logger = logging.getLogger(__name__)

# (header, wire key) in column order
CSV_COLUMNS = [
    ('Title', 'title'),
    ('Company', 'company'),
    ('Location', 'location'),
    ('Description', 'description'),
    ('Salary', 'salary'),
    ('Job Type', 'jobType'),
    ('Workplace Type', 'workplaceType'),
    ('Experience', 'experience'),
    ('Applicant Count', 'applicantCount'),
    ('Company Size', 'companySize'),
    ('LinkedIn Employees', 'linkedinEmployees'),
    ('Industry', 'industry'),
    ('Followers', 'followers'),
    ('Hiring Insights', 'hiringInsights'),
    ('Skills', 'skills'),
    ('Company Description', 'companyDescription'),
    ('Company Commitments', 'companyCommitments'),
    ('URL', 'url'),
    ('Posted Date', 'postedDate'),
    ('Posted Date ISO', 'postedDateISO'),
    ('Scraped At', 'scrapedAt'),
]

CSV_HEADERS = [header for header, _ in CSV_COLUMNS]

Job = Union[JobRecord, dict]


def _as_dict(job: Job) -> dict:
    return job.to_dict() if isinstance(job, JobRecord) else job


def jobs_to_csv(jobs: Iterable[Job]) -> str:
    """Serialize jobs (records or wire dicts) to CSV text with a header row."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator='\n')
    writer.writerow(CSV_HEADERS)
    for job in jobs:
        data = _as_dict(job)
        writer.writerow([data.get(key) or '' for _, key in CSV_COLUMNS])
    return buffer.getvalue()


def csv_to_jobs(text: str) -> List[JobRecord]:
    """
    Parse CSV text produced by `jobs_to_csv` back into records.

    Empty cells become absent fields.

    Raises:
        ValueError: If the header row does not match the export columns
    """
    reader = csv.reader(io.StringIO(text, newline=''))
    header = next(reader, None)
    if header is None:
        return []
    if header != CSV_HEADERS:
        raise ValueError(f"Unexpected CSV header: {header}")

    jobs = []
    for row in reader:
        if not row:
            continue
        data = {key: value for (_, key), value in zip(CSV_COLUMNS, row) if value != ''}
        jobs.append(JobRecord.from_dict(data))
    return jobs


def export_filename(today: Optional[date] = None) -> str:
    """
    Name of the export file for a given day.

    Examples:
        date(2024, 3, 5) -> "linkedin-jobs-2024-03-05.csv"
    """
    today = today or date.today()
    return f"linkedin-jobs-{today.isoformat()}.csv"


def export_jobs(jobs: List[Job], directory: Union[str, Path], today: Optional[date] = None) -> Optional[Path]:
    """
    Write jobs to `<directory>/linkedin-jobs-<date>.csv`.

    Returns:
        Path of the written file, or None when there is nothing to export
    """
    if not jobs:
        logger.info("No jobs to export")
        return None

    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / export_filename(today)
    with open(path, 'w', encoding='utf-8', newline='') as f:
        f.write(jobs_to_csv(jobs))

    logger.info(f"Exported {len(jobs)} jobs to {path}")
    return path
