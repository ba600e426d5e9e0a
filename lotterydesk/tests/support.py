import importlib
import os
import tempfile
import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest import mock

import lotterydesk.config as config_module

# Modules that bind the database engine or session factory at import time.
RELOAD_ORDER = (
    ("db", "lotterydesk.db"),
    ("rounds", "lotterydesk.services.rounds"),
    ("identities", "lotterydesk.services.identities"),
    ("allocation", "lotterydesk.services.allocation"),
    ("views", "lotterydesk.services.views"),
    ("booking", "lotterydesk.services.booking"),
    ("schemas", "lotterydesk.schemas"),
    ("tickets_routes", "lotterydesk.routes.tickets"),
    ("admin_routes", "lotterydesk.routes.admin"),
    ("health_routes", "lotterydesk.routes.health"),
    ("app", "lotterydesk.app"),
)


def reload_backend() -> SimpleNamespace:
    modules = {"models": importlib.import_module("lotterydesk.models")}
    for name, dotted in RELOAD_ORDER:
        module = importlib.import_module(dotted)
        modules[name] = importlib.reload(module)
    return SimpleNamespace(**modules)


class DatabaseTestCase(unittest.TestCase):
    """Points the backend at a fresh file-backed SQLite database per test."""

    env = {}

    def setUp(self) -> None:
        self._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(self._tmpdir.name) / "lottery.db"
        environ = {
            "DATABASE_URL": f"sqlite:///{db_path}",
            "ADMIN_API_KEY": "test-admin",
            "NOTIFIER_BACKEND": "log",
            "TICKET_ALLOCATION_POLICY": "strict",
        }
        environ.update(self.env)
        self._env_patch = mock.patch.dict(os.environ, environ)
        self._env_patch.start()
        config_module.load_settings.cache_clear()

        self.backend = reload_backend()
        self.backend.models.Base.metadata.create_all(self.backend.db.engine)

    def tearDown(self) -> None:
        self.backend.db.SessionLocal.remove()
        self.backend.db.engine.dispose()
        self._env_patch.stop()
        config_module.load_settings.cache_clear()
        self._tmpdir.cleanup()

    def create_round(self, count: int) -> int:
        return self.backend.rounds.RoundRepository().create_round(count)

    def resolve(self, email: str, full_name: str = "Test User", **extra):
        profile = {"email": email, "fullName": full_name}
        profile.update(extra)
        return self.backend.identities.IdentityRepository().resolve(profile)

    def allocation_engine(self, policy: str = "strict"):
        return self.backend.allocation.AllocationEngine(policy=policy)
