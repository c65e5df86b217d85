import pytest
from gitrepo import make_conflicting_repo


@pytest.fixture
def repo(tmp_path):
    return make_conflicting_repo(tmp_path / "repo")
