"""pytest plugin exposing the harness to test modules.

Fixtures:
    harness_config: HarnessConfig loaded from the environment
    orchestrator: started ScenarioOrchestrator
    scenario: ScenarioContext of the running test

Markers:
    e2e: needs a browser and a running application; skipped without --run-e2e
    scenario(auth=AuthMode, viewport=Viewport): options of the scenario fixture

Enable it with ``pytest_plugins = ["boardguru_e2e.plugin"]`` in a conftest.
"""

import logging

import pytest
import pytest_asyncio

from .config.harness_config import HarnessConfig, load_config
from .models.harness_models import AuthMode
from .orchestrator.scenario import ScenarioOrchestrator

logger = logging.getLogger(__name__)

_CALL_EXCINFO = "_boardguru_e2e_call_excinfo"


def pytest_addoption(parser):
    group = parser.getgroup("boardguru-e2e")
    group.addoption(
        "--run-e2e",
        action="store_true",
        default=False,
        help="run tests marked e2e against a live application",
    )


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "e2e: end-to-end scenario needing a browser and the application"
    )
    config.addinivalue_line(
        "markers", "scenario(auth, viewport): options for the scenario fixture"
    )


def pytest_collection_modifyitems(config, items):
    if config.getoption("--run-e2e"):
        return
    skip_e2e = pytest.mark.skip(reason="needs --run-e2e")
    for item in items:
        if "e2e" in item.keywords:
            item.add_marker(skip_e2e)


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    # Keep the test body's exception so the scenario fixture can fail the scenario
    yield
    if call.when == "call" and call.excinfo is not None:
        if not call.excinfo.errisinstance(pytest.skip.Exception):
            setattr(item, _CALL_EXCINFO, call.excinfo)


@pytest.fixture(scope="session")
def harness_config() -> HarnessConfig:
    """Harness configuration from E2E_* environment variables."""
    return load_config()


@pytest_asyncio.fixture
async def orchestrator(harness_config):
    """Started orchestrator, stopped after the test."""
    async with ScenarioOrchestrator(harness_config) as orchestrator:
        yield orchestrator


@pytest_asyncio.fixture
async def scenario(request, orchestrator):
    """Run the test as one scenario.

    A failing test body fails the scenario, so its artifacts are captured
    before the browser context is closed.
    """
    marker = request.node.get_closest_marker("scenario")
    options = dict(marker.kwargs) if marker else {}
    auth = AuthMode(options.pop("auth", AuthMode.PRE_AUTHENTICATED))
    viewport = options.pop("viewport", None)
    if options:
        raise pytest.UsageError(f"Unknown scenario marker options: {sorted(options)}")

    run = orchestrator.run(request.node.name, auth=auth, viewport=viewport)
    ctx = await run.__aenter__()
    yield ctx

    excinfo = getattr(request.node, _CALL_EXCINFO, None)
    if excinfo is None:
        await run.__aexit__(None, None, None)
    else:
        await run.__aexit__(excinfo.type, excinfo.value, excinfo.tb)
