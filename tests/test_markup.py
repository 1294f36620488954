from __future__ import annotations

import pytest

from docweave import markup


def test_split_front_matter() -> None:
    """Leading YAML block is parsed and removed from the body."""
    meta, body = markup.split_front_matter("---\ntitle: Intro\norder: 2\n---\n# Intro\n")

    assert meta == {"title": "Intro", "order": 2}
    assert body == "# Intro\n"


@pytest.mark.parametrize(
    ("text", "expected_body"),
    [
        pytest.param("# No front matter\n", "# No front matter\n", id="absent"),
        pytest.param("---\n---\n# Empty\n", "# Empty\n", id="empty"),
        pytest.param("---\n\n---\nbody", "body", id="blank"),
    ],
)
def test_split_front_matter_without_meta(text: str, expected_body: str) -> None:
    meta, body = markup.split_front_matter(text)

    assert meta == {}
    assert body == expected_body


@pytest.mark.parametrize(
    ("text", "match"),
    [
        pytest.param("---\ntitle: [unclosed\n---\nbody", "invalid front matter", id="bad-yaml"),
        pytest.param("---\n- a\n- b\n---\nbody", "must be a mapping", id="list"),
    ],
)
def test_split_front_matter_malformed(text: str, match: str) -> None:
    with pytest.raises(markup.FrontMatterError, match=match):
        markup.split_front_matter(text)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Getting Started", "getting-started"),
        ("  API  Reference! ", "api-reference"),
        ("multi--dash", "multi-dash"),
    ],
)
def test_slugify(text: str, expected: str) -> None:
    assert markup.slugify(text) == expected


def test_first_heading_by_level() -> None:
    body = "intro\n\n## Second\n\n# First\n"

    assert markup.first_heading(body) == "First"
    assert markup.first_heading(body, level=2) == "Second"
    assert markup.first_heading("no headings") is None
