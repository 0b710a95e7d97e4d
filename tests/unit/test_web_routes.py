import pytest
from aiohttp.test_utils import make_mocked_request

from statbot.web.routes import MAX_PAGE, parse_page


@pytest.mark.parametrize(
    "query, expected",
    [
        ("", 1),
        ("?page=3", 3),
        ("?page=0", 1),
        ("?page=-5", 1),
        ("?page=abc", 1),
        (f"?page={MAX_PAGE}", MAX_PAGE),
        (f"?page={10 ** 20}", MAX_PAGE),
    ],
)
def test_parse_page(query, expected):
    assert parse_page(make_mocked_request("GET", f"/api/users{query}")) == expected
