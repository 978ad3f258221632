import os
import shutil

import pytest

from tagkeeper.config import Config
from tagkeeper.services.indexer_service import CtagsIndexer
from tagkeeper.services.lifecycle_service import IndexController
from tagkeeper.services.system_service import detect_ctags_flavor
from tagkeeper.services.update_service import IndexStatus
from tagkeeper.store import TagStore

CTAGS = shutil.which("ctags")

pytestmark = pytest.mark.skipif(
    CTAGS is None or detect_ctags_flavor(CTAGS) is None,
    reason="Universal or Exuberant Ctags is required",
)


def _write(path, text, mtime):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    os.utime(path, (mtime, mtime))


class Clock:
    def __init__(self, value):
        self.value = value

    def __call__(self):
        return self.value


def test_real_ctags_patch_cycle(project):
    _write(project / "alpha.py", "def alpha_one():\n    pass\n", 1000.0)
    _write(project / "pkg" / "beta.py", "class BetaThing:\n    pass\n", 1000.0)
    _write(project / "gamma.py", "def gamma_gone():\n    pass\n", 1000.0)
    clock = Clock(2000.0)
    controller = IndexController(
        Config(extensions=(".py",)),
        indexer=CtagsIndexer(CTAGS, timeout=60),
        now=clock,
    )

    built = controller.ensure_index(project)

    assert built.status == IndexStatus.REBUILT
    assert set(controller.recorded_files()) == {"alpha.py", "pkg/beta.py", "gamma.py"}
    assert {"alpha_one", "BetaThing", "gamma_gone"} <= set(controller.symbol_names())

    _write(project / "alpha.py", "def alpha_two():\n    pass\n", 3000.0)
    (project / "gamma.py").unlink()
    _write(project / "delta.py", "def delta_new():\n    pass\n", 3000.0)
    clock.value = 4000.0

    patched = controller.refresh()

    assert patched.status == IndexStatus.PATCHED
    recorded = set(controller.recorded_files())
    assert recorded == {"alpha.py", "pkg/beta.py", "delta.py"}
    names = set(controller.symbol_names())
    assert {"alpha_two", "BetaThing", "delta_new"} <= names
    assert "alpha_one" not in names
    assert "gamma_gone" not in names

    on_disk = TagStore.load(built.tags_path)
    assert set(on_disk.recorded_files()) == recorded
