"""Tests for frontmatter extraction."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from metasync.core.frontmatter import FrontmatterDecodeError, extract_frontmatter, split_frontmatter


class TestSplitFrontmatter:
    def test_no_opening_delimiter(self) -> None:
        content = b"title: T\n---\nbody\n"
        assert split_frontmatter(content) == (None, content)

    def test_delimiter_without_newline_is_not_a_header(self) -> None:
        content = b"--- title: T\n---\nbody\n"
        assert split_frontmatter(content) == (None, content)

    def test_missing_closing_delimiter(self) -> None:
        content = b"---\ntitle: T\nbody\n"
        assert split_frontmatter(content) == (None, content)

    def test_closing_delimiter_at_eof_without_newline(self) -> None:
        content = b"---\ntitle: T\n---"
        assert split_frontmatter(content) == (None, content)

    def test_header_and_body(self) -> None:
        header, body = split_frontmatter(b"---\ntitle: T\n---\nline one\nline two\n")
        assert header == b"title: T"
        assert body == b"line one\nline two\n"

    def test_empty_header(self) -> None:
        assert split_frontmatter(b"---\n---\nbody") == (b"", b"body")

    def test_stops_at_first_closing_delimiter(self) -> None:
        header, body = split_frontmatter(b"---\na: 1\n---\nbody\n---\nmore\n")
        assert header == b"a: 1"
        assert body == b"body\n---\nmore\n"

    def test_indented_dashes_do_not_close(self) -> None:
        content = b"---\ntext: |\n  ---\n"
        assert split_frontmatter(content) == (None, content)


class TestExtractFrontmatter:
    def test_no_header_returns_original_bytes(self) -> None:
        content = b"# Heading\n"
        metadata, body = extract_frontmatter(content)
        assert metadata is None
        assert body is content

    def test_all_fields(self) -> None:
        content = (
            b"---\n"
            b"title: Hiking the ridge\n"
            b"shortDescription: A short walk\n"
            b"actionDate: 2024-05-01\n"
            b"publishedTime: 2024-05-02T08:30:00Z\n"
            b"thumbnail: /img/ridge.jpg\n"
            b"tags: [outdoors, autumn, outdoors]\n"
            b'geolocation: "45.1 7.2 30"\n'
            b"timezone: Europe/Rome\n"
            b"---\n"
            b"Body\n"
        )
        metadata, body = extract_frontmatter(content)

        assert metadata is not None
        assert metadata.title == "Hiking the ridge"
        assert metadata.short_description == "A short walk"
        assert metadata.action_date == "2024-05-01"
        assert metadata.published_time == datetime(2024, 5, 2, 8, 30, tzinfo=UTC)
        assert metadata.thumbnail == "/img/ridge.jpg"
        assert metadata.tags == ["outdoors", "autumn", "outdoors"]
        assert metadata.geolocation == "45.1 7.2 30"
        assert metadata.timezone == "Europe/Rome"
        assert body == b"Body\n"

    def test_published_time_with_offset(self) -> None:
        metadata, _ = extract_frontmatter(b"---\npublishedTime: 2024-05-02T10:30:00+02:00\n---\n")
        assert metadata is not None
        assert metadata.published_time == datetime(2024, 5, 2, 10, 30, tzinfo=timezone(timedelta(hours=2)))

    def test_unknown_keys_ignored(self) -> None:
        metadata, _ = extract_frontmatter(b"---\ntitle: T\nlayout: post\ndraft: true\n---\n")
        assert metadata is not None
        assert metadata.title == "T"

    def test_empty_header_yields_empty_metadata(self) -> None:
        metadata, body = extract_frontmatter(b"---\n---\nbody")
        assert metadata is not None
        assert metadata.title == ""
        assert metadata.tags == []
        assert body == b"body"

    def test_null_values_are_absent(self) -> None:
        metadata, _ = extract_frontmatter(b"---\ntitle:\ntags:\n---\n")
        assert metadata is not None
        assert metadata.title == ""
        assert metadata.tags == []

    def test_numeric_scalars_kept_as_text(self) -> None:
        metadata, _ = extract_frontmatter(b"---\ntitle: 1984\ntags: [2024, travel]\n---\n")
        assert metadata is not None
        assert metadata.title == "1984"
        assert metadata.tags == ["2024", "travel"]

    @pytest.mark.parametrize("word", ["Yes", "no", "on", "Off", "true"])
    def test_boolean_words_kept_as_text(self, word: str) -> None:
        header = f"---\ntitle: {word}\ntags: [travel, {word}]\n---\n".encode()

        metadata, _ = extract_frontmatter(header)

        assert metadata is not None
        assert metadata.title == word
        assert metadata.tags == ["travel", word]

    @pytest.mark.parametrize("written", ["05.2024", "010", "0x1F", "1_000", "1e3", ".inf"])
    def test_number_like_dates_kept_verbatim(self, written: str) -> None:
        metadata, _ = extract_frontmatter(f"---\nactionDate: {written}\n---\n".encode())
        assert metadata is not None
        assert metadata.action_date == written

    def test_invalid_yaml(self) -> None:
        with pytest.raises(FrontmatterDecodeError, match="failed to parse YAML"):
            extract_frontmatter(b"---\ntitle: [unterminated\n---\n", source="posts/a.md")

    def test_error_names_document(self) -> None:
        with pytest.raises(FrontmatterDecodeError) as exc_info:
            extract_frontmatter(b"---\ntags: {a: 1}\n---\n", source="posts/a.md")
        assert exc_info.value.source == "posts/a.md"
        assert str(exc_info.value).startswith("posts/a.md: ")

    def test_wrong_type_for_tags(self) -> None:
        with pytest.raises(FrontmatterDecodeError, match="invalid frontmatter field"):
            extract_frontmatter(b"---\ntags: travel\n---\n")

    def test_wrong_type_for_title(self) -> None:
        with pytest.raises(FrontmatterDecodeError):
            extract_frontmatter(b"---\ntitle: [a, b]\n---\n")

    def test_unparseable_published_time(self) -> None:
        with pytest.raises(FrontmatterDecodeError):
            extract_frontmatter(b"---\npublishedTime: last tuesday\n---\n")

    def test_integer_published_time_rejected(self) -> None:
        with pytest.raises(FrontmatterDecodeError):
            extract_frontmatter(b"---\npublishedTime: 1714638600\n---\n")

    @pytest.mark.parametrize("value", ['"1714638600"', '"20240502"', "2024-05-02T8:30", "2024-13-02", "May 2, 2024"])
    def test_non_iso_published_time_rejected(self, value: str) -> None:
        with pytest.raises(FrontmatterDecodeError, match="invalid frontmatter field"):
            extract_frontmatter(f"---\npublishedTime: {value}\n---\n".encode())

    def test_published_date_only(self) -> None:
        metadata, _ = extract_frontmatter(b"---\npublishedTime: 2024-05-02\n---\n")
        assert metadata is not None
        assert metadata.published_time_text() == "2024-05-02T00:00:00Z"

    def test_header_not_a_mapping(self) -> None:
        with pytest.raises(FrontmatterDecodeError, match="must be a mapping"):
            extract_frontmatter(b"---\n- just\n- a list\n---\n")

    def test_invalid_utf8(self) -> None:
        with pytest.raises(FrontmatterDecodeError, match="UTF-8"):
            extract_frontmatter(b"---\ntitle: \xff\xfe\n---\n")

    def test_geolocation_not_validated_at_extraction(self) -> None:
        metadata, _ = extract_frontmatter(b'---\ngeolocation: "nowhere"\n---\n')
        assert metadata is not None
        assert metadata.geolocation == "nowhere"
