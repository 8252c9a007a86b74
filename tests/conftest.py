import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from autoconnect.database import Base
from autoconnect.models import KeyValue, Lead, Prompt, ConnectionRequest, Message  # noqa: F401
from autoconnect.services.notifier import Notifier
from autoconnect.workflow.engine import WorkflowEngine
from autoconnect.workflow.store import StateStore
from autoconnect.workflow.timing import Pacer, WorkflowTiming
from tests.fakes import FakeGenerator, FakeProfilePage, FakeRecordStore, make_profile

RETURN_URL = "https://www.linkedin.com/search/results/people/?keywords=qa"
TODAY = "2026-03-02"


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def store(session_factory):
    return StateStore(session_factory)


@pytest.fixture
def page():
    return FakeProfilePage()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def record_store():
    return FakeRecordStore()


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def make_engine(store, page, generator, record_store, notifier, sleeps):
    """Build an engine over the shared store. Each call is a 'fresh process'."""

    def build(timing=None, pacer=None, **overrides):
        kwargs = dict(
            store=store,
            page=page,
            generator=generator,
            record_store=record_store,
            timing=timing or WorkflowTiming(),
            pacer=pacer or Pacer(sleep=sleeps.append),
            notifier=notifier,
            return_url=RETURN_URL,
            today=lambda: TODAY,
        )
        kwargs.update(overrides)
        return WorkflowEngine(**kwargs)

    return build


@pytest.fixture
def profiles():
    return [
        make_profile("ada-lovelace", title="Engineer", company="Analytical"),
        make_profile("grace-hopper", title="Admiral", company="Navy"),
        make_profile("alan-turing", title="Researcher", company="Bletchley"),
    ]


@pytest.fixture
def processing(make_engine, profiles):
    """An engine whose workflow has just entered Processing with three profiles."""
    engine = make_engine()
    engine.start_collection()
    engine.intake(profiles)
    engine.stop_collection()
    engine.start_processing("Let's talk about testing.")
    return engine
