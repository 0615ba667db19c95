"""
Configuration des tests pytest.
"""
import pytest
import sys
import os
from pathlib import Path

# Ajoute src au path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"


def pytest_configure(config):
    """Déclare les markers du projet."""
    config.addinivalue_line(
        "markers", "asyncio: marque un test comme asynchrone"
    )
    config.addinivalue_line(
        "markers", "unit: test unitaire sans I/O externe"
    )
    config.addinivalue_line(
        "markers", "e2e: test de bout en bout (sous-processus)"
    )


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch):
    """Chaque test repart d'un cache de configuration vide, sans env parasite."""
    from taskbridge.config import loader

    for name in (
        "TASKBRIDGE_CONFIG",
        "TASKBRIDGE_LOG_FILE",
        "TASKBRIDGE_POLL_INTERVAL_MS",
        "TASKBRIDGE_TASKS_FILE",
        "TASKBRIDGE_STREAM_LIMIT",
    ):
        monkeypatch.delenv(name, raising=False)
    loader._clear_config_cache()
    yield
    loader._clear_config_cache()


@pytest.fixture
def sample_tasks_file():
    """Chemin du fichier de tâches de test."""
    return FIXTURES_DIR / "sample_tasks.py"


@pytest.fixture
def sample_registry(sample_tasks_file):
    """Registre complet: commandes intégrées + tâches de test."""
    from taskbridge.registry import build_registry

    return build_registry(sample_tasks_file)
