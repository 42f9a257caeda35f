import pytest

from support import World, make_world


@pytest.fixture
def world() -> World:
    return make_world()
