from pathlib import Path
import sys

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from fakes import FakeGateway, make_item


@pytest.fixture
def shirts():
    return [
        make_item("1", title="Red Shirt"),
        make_item("2", title="Blue shirt XL"),
        make_item("3", title="Shorts"),
    ]


@pytest.fixture
def gateway(shirts):
    return FakeGateway(shirts)
