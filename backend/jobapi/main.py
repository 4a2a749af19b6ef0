from contextlib import asynccontextmanager
from fastapi import FastAPI, Depends, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from typing import Any, Dict, List, Optional
import logging
import asyncio

from jobapi.config import settings
from jobapi.database import init_db, engine
from jobapi.commands import CommandBus, NO_JOBS_NOTICE
from jobapi.export import jobs_to_csv, export_filename
from jobapi.logging_config import setup_logging
from jobapi.store import JobStore
from jobscraper.crawlers.browser import BrowserCrawler
from jobscraper.manager import ScrapeManager, build_site
from pydantic import BaseModel

setup_logging()

logger = logging.getLogger(__name__)

# Shared command bus; the scrape manager is attached once the browser is open
command_bus = CommandBus(JobStore(), export_dir=settings.export_dir)
_crawler: Optional[BrowserCrawler] = None


def get_bus() -> CommandBus:
    return command_bus


async def open_browser():
    """Launch the browser at the start URL and attach a scrape manager to the bus."""
    global _crawler
    crawler = BrowserCrawler(
        headless=settings.headless,
        timeout=settings.browser_timeout,
        storage_state=str(settings.session_path),
    )
    await crawler.start(settings.start_url)
    _crawler = crawler

    store = command_bus.store
    command_bus.manager = ScrapeManager(
        crawler,
        build_site(settings.site, **settings.site_overrides()),
        persist=store.merge,
        watch_changes=settings.watch_changes,
    )
    logger.info(f"Browser open at {settings.start_url}")


async def close_browser():
    """Stop any active run (it hands off its records), keep the login, close the browser."""
    if command_bus.manager is not None:
        try:
            await command_bus.manager.shutdown()
        except Exception as e:
            logger.warning(f"Error stopping scrape: {e}")
        command_bus.manager = None

    if _crawler is not None:
        try:
            await _crawler.save_storage_state()
        except Exception as e:
            logger.warning(f"Could not save browser session: {e}")
        await _crawler.close()
        logger.info("Browser closed")


async def release_database():
    """Dispose the engine pool off the event loop, giving up after 2 seconds."""
    try:
        await asyncio.wait_for(
            asyncio.get_running_loop().run_in_executor(None, lambda: engine.dispose(close=True)),
            timeout=2.0,
        )
        logger.info("Job store connections released")
    except asyncio.TimeoutError:
        logger.warning("Releasing job store connections timed out")
    except Exception as e:
        logger.warning(f"Error releasing job store connections: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the store and the browser on startup; stop the run and close both on shutdown."""
    logger.info("=" * 60)
    logger.info(f"Job Saver API starting (site: {settings.site}, log: {settings.log_file})")
    logger.info("=" * 60)
    init_db()
    logger.info(f"Job store ready at {settings.database_url} ({command_bus.store.count()} jobs saved)")

    if settings.launch_browser:
        try:
            await open_browser()
        except Exception as e:
            logger.error(f"Could not open browser, scraping is unavailable: {e}")
    else:
        logger.info("Browser launch disabled, only stored jobs are served")

    yield

    logger.info("Job Saver API shutting down")
    try:
        await asyncio.wait_for(close_browser(), timeout=40.0)
    except asyncio.TimeoutError:
        logger.warning("Browser did not close in time")
    except Exception as e:
        logger.error(f"Error closing browser: {e}")
    await release_database()
    logger.info("Shutdown complete")


app = FastAPI(
    title="Job Saver API",
    version="1.0.0",
    lifespan=lifespan
)

# Note: allow_credentials must be False when allow_origins is ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/favicon.ico", include_in_schema=False)
async def favicon():
    """Return empty response for favicon requests"""
    return Response(status_code=204)


class CommandRequest(BaseModel):
    action: str
    jobs: Optional[List[Dict[str, Any]]] = None

    class Config:
        extra = "allow"


@app.get("/")
async def root():
    return {"message": "Job Saver API", "version": "1.0.0", "actions": command_bus.actions}


@app.post("/api/command")
async def run_command(request: CommandRequest, bus: CommandBus = Depends(get_bus)):
    """Dispatch one command message, same shape as the in-process bus."""
    return await bus.dispatch(request.model_dump(exclude_none=True))


@app.get("/api/jobs")
async def get_jobs(bus: CommandBus = Depends(get_bus)):
    return await bus.dispatch({'action': 'GET_ALL_JOBS'})


@app.get("/api/jobs/export")
async def download_jobs(bus: CommandBus = Depends(get_bus)):
    """Download all saved jobs as CSV."""
    jobs = bus.store.load_raw()
    if not jobs:
        raise HTTPException(status_code=404, detail=NO_JOBS_NOTICE)
    return Response(
        content=jobs_to_csv(jobs),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )


@app.get("/api/status")
async def get_status(bus: CommandBus = Depends(get_bus)):
    return await bus.dispatch({'action': 'GET_STATUS'})


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        access_log=True,
        log_config=None,
        timeout_keep_alive=5,
        timeout_graceful_shutdown=5.0,
    )
