import os
import sys
import pytest


def _ensure_project_root_on_sys_path() -> None:
    here = os.path.dirname(__file__)
    project_root = os.path.abspath(os.path.join(here, "..", ".."))
    if project_root not in sys.path:
        sys.path.insert(0, project_root)


_ensure_project_root_on_sys_path()


@pytest.fixture(autouse=True)
def _clear_songdrop_env():
    """Keep tokens and SONGDROP_* settings from the developer's shell out of tests."""
    keys = [k for k in os.environ if k.startswith('SONGDROP_')]
    keys += ['SPOTIFY_ACCESS_TOKEN', 'SPOTIFY_REFRESH_TOKEN']
    backup = {k: os.environ.get(k) for k in keys}
    for k in keys:
        os.environ.pop(k, None)
    try:
        yield
    finally:
        for k, v in backup.items():
            if v is None:
                os.environ.pop(k, None)
            else:
                os.environ[k] = v
