"""
Background worker that owns the browser and runs Playwright jobs.

Playwright's sync API is bound to the thread that started it, so every
browser call goes through one dedicated executor thread. The FastAPI event
loop only enqueues tasks and flips flags (pause, stop collection), which the
engines read from that thread.
"""
import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

from playwright.sync_api import Error as PlaywrightError
from sqlalchemy.orm import Session

from autoconnect.config import settings
from autoconnect.database import SessionLocal
from autoconnect.linkedin.actions import ActionPrimitives
from autoconnect.linkedin.browser import find_logged_in_page, launch_browser, open_feed, open_login
from autoconnect.linkedin.probe import PageProbe
from autoconnect.linkedin.profile_page import ProfilePage
from autoconnect.linkedin.search_page import SearchPage
from autoconnect.linkedin.session import SessionStore
from autoconnect.services.generator import GeminiMessageGenerator
from autoconnect.services.notifier import Notifier, notifier as default_notifier
from autoconnect.services.record_store import SqlRecordStore
from autoconnect.worker.task_queue import TaskType, WorkerTask, task_registry
from autoconnect.workflow.collector import CollectionEngine
from autoconnect.workflow.engine import ResumeOutcome, WorkflowEngine
from autoconnect.workflow.registry import ComponentRegistry, registry as default_registry
from autoconnect.workflow.store import StateStore
from autoconnect.workflow.timing import CollectionTiming, Pacer, RetryPolicy, WorkflowTiming

logger = logging.getLogger("autoconnect")

ENGINE_KEY = "workflow_engine"


class LinkedInWorker:
    """
    Key design:
    - Persistent browser session (launched once, stays alive)
    - Tasks come from an asyncio.Queue
    - Playwright runs synchronously in a single dedicated thread
    - One workflow engine per process, rebound to whichever page is live
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        notifier: Optional[Notifier] = None,
        components: Optional[ComponentRegistry] = None,
    ):
        self.session_factory = session_factory
        self.notifier = notifier or default_notifier
        self.components = components or default_registry
        self.session = SessionStore(settings.session_file)
        self.queue: asyncio.Queue[WorkerTask] = asyncio.Queue()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="playwright")
        self._running = False
        self._pw = None
        self._browser = None
        self._context = None
        self._page = None
        self._browser_ready = False
        self._loop_task = None
        self._current: Optional[WorkerTask] = None

    # --- Components ---

    @property
    def engine(self) -> WorkflowEngine:
        return self.components.get_or_create(ENGINE_KEY, self._build_engine)

    def _build_engine(self) -> WorkflowEngine:
        return WorkflowEngine(
            store=StateStore(self.session_factory),
            page=None,
            generator=GeminiMessageGenerator(),
            record_store=SqlRecordStore(self.session_factory),
            timing=WorkflowTiming.from_settings(),
            pacer=Pacer(),
            notifier=self.notifier,
            return_url=settings.collection_start_url,
        )

    def _drivers(self, page):
        """Probe, actions and page drivers for one browser page, built once."""

        def build():
            pacer = Pacer()
            probe = PageProbe(page, RetryPolicy.from_settings())
            actions = ActionPrimitives(page, pacer, settings.click_settle_delay)
            return {
                "profile": ProfilePage(page, probe, actions, settings.page_settle_timeout, pacer),
                "search": SearchPage(page, probe, actions, settings.page_settle_timeout),
            }

        return self.components.get_or_create(f"drivers:{id(page)}", build)

    def _collector(self) -> CollectionEngine:
        page = self._page

        def build():
            return CollectionEngine(
                self._drivers(page)["search"],
                consumer=self.engine.intake,
                timing=CollectionTiming.from_settings(),
                pacer=Pacer(),
                notifier=self.notifier,
            )

        return self.components.get_or_create(f"collector:{id(page)}", build)

    def _bind_page(self, page) -> None:
        if self._page is not None and self._page is not page:
            self.components.discard(f"drivers:{id(self._page)}")
            self.components.discard(f"collector:{id(self._page)}")
        self._page = page
        self.engine.page = self._drivers(page)["profile"]

    # --- Status ---

    @property
    def is_browser_ready(self) -> bool:
        return self._browser_ready and self._page is not None

    @property
    def is_collecting(self) -> bool:
        collector = self.components.get(f"collector:{id(self._page)}") if self._page else None
        return bool(collector and collector.is_collecting)

    @property
    def status(self) -> str:
        if not self._running:
            return "stopped"
        if not self._browser_ready:
            return "no_browser"
        if self._current is not None:
            return self._current.task_type.value
        return "idle"

    @property
    def active_job(self) -> Optional[str]:
        return self._current.task_id if self._current else None

    # --- Lifecycle ---

    async def start(self):
        """Start the worker's processing loop."""
        self._running = True
        self._loop_task = asyncio.create_task(self._run_loop())
        logger.info("LinkedIn worker started.")

    async def stop(self):
        """Stop the worker and close browser."""
        self._running = False
        if self.is_collecting:
            self._collector().stop()
        if self._loop_task:
            self._loop_task.cancel()
        await self._in_browser_thread(self._close_browser)
        self._executor.shutdown(wait=False)
        logger.info("LinkedIn worker stopped.")

    async def enqueue(self, task: WorkerTask) -> str:
        """Add a task to the queue. Returns task_id."""
        task_registry.register(task)
        await self.queue.put(task)
        logger.info(f"Task {task.task_id} ({task.task_type.value}) enqueued.")
        return task.task_id

    async def _in_browser_thread(self, fn, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, fn, *args)

    async def _run_loop(self):
        """Main processing loop - waits for tasks and executes them."""
        while self._running:
            try:
                task = await asyncio.wait_for(self.queue.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            except asyncio.CancelledError:
                break

            task.status = "running"
            self._current = task
            logger.info(f"Processing task {task.task_id} ({task.task_type.value})...")

            try:
                await self._in_browser_thread(self._execute_task, task)
                if task.status == "running":
                    task.status = "completed"
            except Exception as e:
                task.status = "failed"
                task.error = str(e)
                logger.error(f"Task {task.task_id} failed: {e}")
            finally:
                self._current = None

            task_registry.cleanup_old()

    def _execute_task(self, task: WorkerTask):
        """Run in the browser thread. Dispatches to the appropriate handler."""
        if not self.is_browser_ready:
            task.error = "Browser not ready. Please login first."
            task.status = "failed"
            return

        if task.task_type == TaskType.COLLECT:
            self._collect(task)
        elif task.task_type == TaskType.RUN_WORKFLOW:
            self._run_workflow(task)

    # --- Login ---

    async def launch_and_login(self) -> WorkerTask:
        """Launch browser and try the saved session. Returns a task with status."""
        task = WorkerTask(task_type=TaskType.LOGIN)
        task_registry.register(task)
        task.status = "running"

        try:
            await self._in_browser_thread(self._do_launch_and_login)
            task.status = "completed"
        except PlaywrightError as e:
            task.status = "failed"
            task.error = str(e)
            logger.error(f"Browser launch failed: {e}")

        if self.is_browser_ready:
            await self.resume_pending()
        return task

    def _do_launch_and_login(self):
        """Launch Playwright browser and restore the session (runs in thread)."""
        self._close_browser()
        self._pw, self._browser, self._context, page = launch_browser(
            self.session, headless=settings.headless
        )
        self._bind_page(page)

        if self.session.exists() and open_feed(page):
            self._browser_ready = True
            logger.info("Browser ready (saved session is valid).")
            return

        # The frontend polls /api/linkedin/check-login while the user logs in
        open_login(page)
        self._browser_ready = False

    async def check_and_finalize_login_async(self) -> bool:
        success = await self._in_browser_thread(self.check_and_finalize_login)
        if success:
            await self.resume_pending()
        return success

    def check_and_finalize_login(self) -> bool:
        """Check if user has logged in. Call this after manual login."""
        if self._context is None:
            return False
        if self.is_browser_ready:
            return True

        page = find_logged_in_page(self._context)
        if page is None:
            return False

        self._bind_page(page)
        self._browser_ready = True
        self.session.save(self._context)
        logger.info("Login confirmed and session saved.")
        return True

    # --- Collection ---

    async def start_collection(self, start_url: Optional[str], max_pages: Optional[int]) -> str:
        self.engine.start_collection(start_url or settings.collection_start_url)
        existing = task_registry.open_task(TaskType.COLLECT)
        if existing:
            return existing.task_id
        task = WorkerTask(
            task_type=TaskType.COLLECT,
            payload={"start_url": start_url, "max_pages": max_pages},
        )
        return await self.enqueue(task)

    def stop_collection(self) -> None:
        """Callable from any thread; the collection loop exits at its next tick."""
        if self.is_collecting:
            self._collector().stop()
        else:
            self.engine.stop_collection()

    def _collect(self, task: WorkerTask):
        start_url = task.payload.get("start_url")
        search = self._drivers(self._page)["search"]
        collector = self._collector()
        # The queue may have been cleared since the last run
        collector.reset(self.engine.current_state().queue)
        try:
            if start_url and start_url != search.url:
                search.page.goto(start_url, wait_until="domcontentloaded", timeout=30000)
                search.wait_until_ready()
            profiles = collector.collect(task.payload.get("max_pages"))
            task.progress = task.total = len(profiles)
        finally:
            self.engine.stop_collection()

    # --- Workflow ---

    async def resume_pending(self) -> Optional[str]:
        """Schedule a workflow pass if a Processing workflow is waiting."""
        if not self.is_browser_ready or not self.engine.has_work():
            return None
        existing = task_registry.open_task(TaskType.RUN_WORKFLOW)
        if existing:
            return existing.task_id
        logger.info("Workflow in flight; scheduling resume.")
        return await self.enqueue(WorkerTask(task_type=TaskType.RUN_WORKFLOW))

    def _run_workflow(self, task: WorkerTask):
        engine = self.engine
        state = engine.current_state()
        task.total = len(state.queue)

        outcome = engine.resume()
        while outcome.should_continue and self._running:
            task.progress = engine.current_state().cursor
            outcome = engine.resume()

        if outcome == ResumeOutcome.COMPLETED:
            task.progress = task.total
        logger.info(f"Workflow pass ended: {outcome.value}")

    def _close_browser(self):
        """Close the Playwright browser and all resources."""
        self._browser_ready = False
        try:
            if self._browser:
                self._browser.close()
            if self._pw:
                self._pw.stop()
        except PlaywrightError as e:
            logger.debug(f"Browser cleanup: {e}")
        if self._page is not None:
            self.components.discard(f"drivers:{id(self._page)}")
            self.components.discard(f"collector:{id(self._page)}")
        self._pw = None
        self._browser = None
        self._context = None
        self._page = None


# Global worker instance
worker = LinkedInWorker()
