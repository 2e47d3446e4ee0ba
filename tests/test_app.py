"""Application wiring.

Invariants:
    - Each app builds its engine from the settings it was created with
    - get_db hands out sessions bound to that engine
    - Startup creates the schema on that engine
"""

from types import SimpleNamespace

from sqlalchemy import inspect

from taskflow.config import TestingConfig
from taskflow.database import get_db
from taskflow.main import create_app


async def test_engine_follows_app_settings(tmp_path):
    path = tmp_path / "app.db"
    app = create_app(TestingConfig(database_url=f"sqlite+aiosqlite:///{path}"))

    assert app.state.engine.url.database == str(path)
    assert app.state.settings.database_url.endswith("app.db")

    sessions = get_db(SimpleNamespace(app=app))
    session = await sessions.__anext__()
    assert session.bind is app.state.engine
    await sessions.aclose()

    await app.state.engine.dispose()


async def test_startup_creates_tables_on_app_engine(tmp_path):
    app = create_app(TestingConfig(database_url=f"sqlite+aiosqlite:///{tmp_path / 'app.db'}"))

    async with app.router.lifespan_context(app):
        async with app.state.engine.connect() as conn:
            tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())

    assert {"users", "projects", "project_members", "sprints", "tasks"} <= set(tables)


def test_separate_apps_do_not_share_engines(tmp_path):
    first = create_app(TestingConfig(database_url=f"sqlite+aiosqlite:///{tmp_path / 'a.db'}"))
    second = create_app(TestingConfig(database_url=f"sqlite+aiosqlite:///{tmp_path / 'b.db'}"))

    assert first.state.engine is not second.state.engine
    assert first.state.engine.url.database != second.state.engine.url.database
