"""Tests for the tag model, current and 2011-era layouts."""

import xml.etree.ElementTree as ET

import pytest

from mkatools import tags as tag_model
from mkatools.errors import ParseError, ValidationError
from mkatools.types import Album, Tags, TrackTag

LEGACY_TAGS = b"""<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE Tags SYSTEM "matroskatags.dtd">
<Tags>
  <Tag>
    <Targets><TargetTypeValue>50</TargetTypeValue></Targets>
    <Simple><Name>TITLE</Name><String>Album</String></Simple>
    <Simple><Name>ARTIST</Name><String>Band</String></Simple>
    <Simple><Name>DATE_RECORDED</Name><String>1999</String></Simple>
    <Simple><Name>GENRE</Name><String>Jazz</String></Simple>
  </Tag>
  <Tag>
    <Targets><TargetTypeValue>30</TargetTypeValue></Targets>
    <Simple><Name>TITLE</Name><String>One</String></Simple>
    <Simple><Name>PART_NUMBER</Name><String>01</String></Simple>
    <Simple><Name>SAMPLES</Name><String>9703764</String></Simple>
  </Tag>
  <Tag>
    <Targets><TargetTypeValue>30</TargetTypeValue></Targets>
    <Simple><Name>TITLE</Name><String>Two</String></Simple>
    <Simple><Name>PART_NUMBER</Name><String>02</String></Simple>
    <Simple><Name>SAMPLES</Name><String>10548720</String></Simple>
  </Tag>
</Tags>
"""


def _tags_doc(album_simples, track_tags=""):
    simples = "".join(f"<Simple><Name>{n}</Name><String>{v}</String></Simple>" for n, v in album_simples)
    return (f"<Tags><Tag><Targets><TargetTypeValue>50</TargetTypeValue></Targets>{simples}</Tag>"
            f"{track_tags}</Tags>").encode("utf-8")


FULL_ALBUM = [("TITLE", "B"), ("ARTIST", "A"), ("DATE_RELEASED", "2020"), ("GENRE", "Rock")]


class TestBuild:
    """Tests for tag_model.build."""

    def test_builds_album_and_tracks(self):
        tags = tag_model.build("A", "B", "2020", "Rock", ["T1", "T2"], [5, 9])
        assert tags.album == Album(artist="A", title="B", year="2020", genre="Rock", total_parts=2)
        assert tags.tracks == (TrackTag(5, "T1", 1), TrackTag(9, "T2", 2))

    def test_rejects_mismatched_counts(self):
        with pytest.raises(ValidationError):
            tag_model.build("A", "B", "2020", "Rock", ["T1", "T2", "T3"], [5, 9])


class TestSerialize:
    """Layout of the XML tag listing."""

    def test_scopes(self):
        data = tag_model.serialize(tag_model.build("A", "B", "2020", "Rock", ["T1", "T2"], [5, 9]))
        root = ET.fromstring(data)
        records = root.findall("Tag")
        assert [r.findtext("Targets/TargetTypeValue") for r in records] == ["50", "30", "30"]

        album = {s.findtext("Name"): s.findtext("String") for s in records[0].findall("Simple")}
        assert album == {"TITLE": "B", "ARTIST": "A", "TOTAL_PARTS": "2", "DATE_RELEASED": "2020", "GENRE": "Rock"}
        assert records[0].find("Targets/ChapterUID") is None

        assert [r.findtext("Targets/ChapterUID") for r in records[1:]] == ["5", "9"]
        second = {s.findtext("Name"): s.findtext("String") for s in records[2].findall("Simple")}
        assert second == {"TITLE": "T2", "PART_NUMBER": "2"}

    def test_round_trip(self):
        data = tag_model.serialize(tag_model.build("A", "B", "2020", "Rock", ["T1", "T2"], [5, 9]))
        parsed = tag_model.parse_tags(data)
        assert parsed.album.artist == "A"
        assert parsed.album.title == "B"
        assert parsed.album.total_parts == 2
        assert parsed.by_uid(5) == TrackTag(uid=5, title="T1", part_number=1)
        assert parsed.by_uid(9) == TrackTag(uid=9, title="T2", part_number=2)
        assert parsed.uids == [5, 9]

    def test_round_trip_keeps_markup_characters(self):
        tags = tag_model.build("AC/DC & Friends", "<B>", "2020-01", "R&B", ["a < b"], [1])
        assert tag_model.parse_tags(tag_model.serialize(tags)) == tags

    def test_skips_absent_track_fields(self):
        tags = Tags(album=Album("A", "B", "2020", "Rock", 1), tracks=(TrackTag(uid=7),))
        root = ET.fromstring(tag_model.serialize(tags))
        assert root.findall("Tag")[1].findall("Simple") == []
        assert tag_model.parse_tags(tag_model.serialize(tags)).tracks == (TrackTag(uid=7),)


class TestParse:
    """Reading tag listings back."""

    @pytest.mark.parametrize("missing", ["ARTIST", "TITLE", "DATE_RELEASED", "GENRE"])
    def test_missing_album_field(self, missing):
        data = _tags_doc([(n, v) for n, v in FULL_ALBUM if n != missing])
        with pytest.raises(ParseError) as exc:
            tag_model.parse_tags(data)
        assert exc.value.reason == "missing field"
        assert exc.value.field == missing

    def test_track_title_does_not_satisfy_album_title(self):
        track = ("<Tag><Targets><TargetTypeValue>30</TargetTypeValue><ChapterUID>1</ChapterUID></Targets>"
                 "<Simple><Name>TITLE</Name><String>Track</String></Simple></Tag>")
        data = _tags_doc([(n, v) for n, v in FULL_ALBUM if n != "TITLE"], track)
        with pytest.raises(ParseError) as exc:
            tag_model.parse_tags(data)
        assert exc.value.field == "TITLE"

    def test_total_parts_defaults_to_track_count(self):
        track = ("<Tag><Targets><TargetTypeValue>30</TargetTypeValue><ChapterUID>{}</ChapterUID></Targets></Tag>")
        data = _tags_doc(FULL_ALBUM, track.format(1) + track.format(2))
        parsed = tag_model.parse_tags(data)
        assert parsed.album.total_parts == 2
        assert parsed.tracks == (TrackTag(uid=1), TrackTag(uid=2))

    def test_track_record_without_uid(self):
        track = "<Tag><Targets><TargetTypeValue>30</TargetTypeValue></Targets></Tag>"
        with pytest.raises(ParseError) as exc:
            tag_model.parse_tags(_tags_doc(FULL_ALBUM, track))
        assert exc.value.field == "ChapterUID"

    def test_ignores_other_target_types(self):
        other = ("<Tag><Targets><TargetTypeValue>70</TargetTypeValue></Targets>"
                 "<Simple><Name>ARTIST</Name><String>Collection</String></Simple></Tag>")
        parsed = tag_model.parse_tags(_tags_doc(FULL_ALBUM, other))
        assert parsed.album.artist == "A"

    def test_malformed_part_number(self):
        track = ("<Tag><Targets><TargetTypeValue>30</TargetTypeValue><ChapterUID>1</ChapterUID></Targets>"
                 "<Simple><Name>PART_NUMBER</Name><String>first</String></Simple></Tag>")
        with pytest.raises(ParseError):
            tag_model.parse_tags(_tags_doc(FULL_ALBUM, track))

    def test_wrong_root(self):
        with pytest.raises(ParseError):
            tag_model.parse_tags(b"<Chapters/>")


class TestLegacyTags:
    """2011-era tags: SAMPLES per track, DATE_RECORDED, no uids."""

    def test_parses_lengths_and_names(self):
        legacy = tag_model.parse_legacy_tags(LEGACY_TAGS)
        assert legacy.album == Album(artist="Band", title="Album", year="1999", genre="Jazz", total_parts=2)
        assert legacy.track_names == ("One", "Two")
        assert legacy.track_lengths == (9_703_764, 10_548_720)

    def test_requires_date_recorded(self):
        with pytest.raises(ParseError) as exc:
            tag_model.parse_legacy_tags(LEGACY_TAGS.replace(b"DATE_RECORDED", b"DATE_RELEASED"))
        assert exc.value.field == "DATE_RECORDED"

    def test_unpaired_samples(self):
        data = LEGACY_TAGS.replace(b"<Simple><Name>SAMPLES</Name><String>10548720</String></Simple>", b"")
        with pytest.raises(ValidationError):
            tag_model.parse_legacy_tags(data)
