"""
Tests for the overview and per-user compatibility reports.
"""

import json

import pytest

from tastematch.engine import (
    CompatibilityEngine,
    RankingSnapshot,
    music_taste_for_user,
    music_taste_overview,
    score_table,
)
from tastematch.errors import UnknownUserError

from sample_data import base_snapshot, crowd_snapshot


class TestOverview:
    """Global top-pairs view."""

    def setup_method(self):
        self.snapshot = base_snapshot()
        self.report = music_taste_overview(self.snapshot)

    def test_identical_top_three_scenario(self):
        top = self.report[0]
        assert (top.user_1, top.user_2) == ("alice", "bob")
        assert top.overlapping_songs == 3
        assert top.song_rank_diff == 0.0
        assert top.song_relationship_strength == 30.0
        assert top.overlapping_artists == 2
        assert top.total_songs_shared_artists == 5
        assert top.artist_rank_diff == 0.4
        assert top.combined_score == 35.8

    def test_order_and_tie_break(self):
        pairs = [(r.user_1, r.user_2) for r in self.report]
        assert pairs == [("alice", "bob"), ("alice", "carol"), ("bob", "carol")]

    def test_users_without_overlap_absent(self):
        names = {r.user_1 for r in self.report} | {r.user_2 for r in self.report}
        assert "dave" not in names

    def test_song_details(self):
        details = self.report[0].overlapping_song_details
        assert len(details) == self.report[0].overlapping_songs
        assert [d["song_name"] for d in details] == ["Song A", "Song B", "Song C"]
        assert details[0] == {
            "song_name": "Song A",
            "artist": "Artist X",
            "user1_rank": 1,
            "user2_rank": 1,
            "rank_difference": 0,
        }

    def test_artist_details_order(self):
        details = self.report[0].overlapping_artist_details
        assert len(details) == self.report[0].total_songs_shared_artists
        assert [(d["user1_song"], d["user2_song"]) for d in details] == [
            ("Song A", "Song A"),
            ("Song B", "Song B"),
            ("Song C", "Song C"),
            ("Song A", "Song B"),
            ("Song B", "Song A"),
        ]
        diffs = [d["rank_difference"] for d in details]
        assert diffs == sorted(diffs)

    def test_artist_only_pair_has_no_song_details(self):
        carol = self.report[1]
        assert carol.overlapping_songs == 0
        assert carol.overlapping_song_details == []
        assert carol.overlapping_artist_details == [{
            "artist": "Artist Y",
            "user1_song": "Song C",
            "user1_rank": 3,
            "user2_song": "Song F",
            "user2_rank": 1,
            "rank_difference": 2,
        }]

    def test_truncated_to_five(self):
        report = music_taste_overview(crowd_snapshot(7))
        assert len(report) == 5
        assert [(r.user_1, r.user_2) for r in report] == [
            ("user1", "user2"), ("user1", "user3"), ("user1", "user4"),
            ("user1", "user5"), ("user1", "user6"),
        ]
        assert all(r.combined_score == 13.0 for r in report)

    def test_sorted_by_score_songs_artists(self):
        table = score_table(self.snapshot)
        keys = list(zip(-table["combined_score"], -table["overlapping_songs"], -table["overlapping_artists"]))
        assert keys == sorted(keys)

    def test_empty_snapshot(self):
        assert music_taste_overview(RankingSnapshot.from_records([], [], [])) == []

    def test_idempotent_output(self):
        first = json.dumps([r.to_dict() for r in music_taste_overview(self.snapshot)])
        second = json.dumps([r.to_dict() for r in music_taste_overview(base_snapshot())])
        assert first == second


class TestMatchesForUser:
    """Per-user matches view."""

    def setup_method(self):
        self.snapshot = base_snapshot()

    def test_matches_for_alice(self):
        report = music_taste_for_user(self.snapshot, 1)
        assert [r.other_user_name for r in report] == ["bob", "carol"]

    def test_artist_only_match(self):
        carol = music_taste_for_user(self.snapshot, 1)[1]
        assert carol.overlapping_songs == 0
        assert carol.overlapping_artists > 0
        assert carol.combined_score > 0
        assert carol.combined_score == 3.0 * carol.overlapping_artists - 0.5 * carol.artist_rank_diff

    def test_details_relative_to_active_user(self):
        carol = music_taste_for_user(self.snapshot, 3)
        alice = [r for r in carol if r.other_user_name == "alice"][0]
        assert alice.overlapping_artist_details == [{
            "artist": "Artist Y",
            "active_user_song": "Song F",
            "active_user_rank": 1,
            "other_user_song": "Song C",
            "other_user_rank": 3,
            "rank_difference": 2,
        }]

    def test_song_detail_keys(self):
        bob = music_taste_for_user(self.snapshot, 1)[0]
        assert set(bob.overlapping_song_details[0]) == {
            "song_name", "artist", "active_user_rank", "other_user_rank", "rank_difference"
        }

    def test_symmetric_with_overview(self):
        overview = {(r.user_1, r.user_2): r for r in music_taste_overview(self.snapshot)}
        for active_id, active_name in ((1, "alice"), (2, "bob"), (3, "carol")):
            for match in music_taste_for_user(self.snapshot, active_id):
                key = tuple(sorted((active_name, match.other_user_name)))
                pair = overview[key]
                assert match.overlapping_songs == pair.overlapping_songs
                assert match.song_rank_diff == pair.song_rank_diff
                assert match.overlapping_artists == pair.overlapping_artists
                assert match.total_songs_shared_artists == pair.total_songs_shared_artists
                assert match.artist_rank_diff == pair.artist_rank_diff
                assert match.combined_score == pair.combined_score

    def test_no_matches(self):
        assert music_taste_for_user(self.snapshot, 4) == []

    def test_not_truncated(self):
        report = music_taste_for_user(crowd_snapshot(8), 1)
        assert len(report) == 7

    def test_unknown_user(self):
        with pytest.raises(UnknownUserError):
            music_taste_for_user(self.snapshot, 99)


class TestCompatibilityEngine:

    def setup_method(self):
        self.engine = CompatibilityEngine()

    def test_matches_by_name(self):
        report = self.engine.matches_for_user_name(base_snapshot(), "bob")
        assert [r.other_user_name for r in report] == ["alice", "carol"]

    def test_unknown_name(self):
        with pytest.raises(UnknownUserError):
            self.engine.matches_for_user_name(base_snapshot(), "nobody")

    def test_special_characters_are_opaque(self):
        snapshot = RankingSnapshot.from_records(
            rankings=[
                {"user_id": 1, "song_id": 1, "rank": 1},
                {"user_id": 2, "song_id": 1, "rank": 2},
            ],
            songs=[{"song_id": 1, "name": "Don't Stop \"Me\" Now; DROP TABLE", "artist": "Sigur Rós 🎵"}],
            users=[{"user_id": 1, "display_name": "O'Brien"}, {"user_id": 2, "display_name": "Zoë, \"Z\""}],
        )
        top = self.engine.overview(snapshot)[0]
        assert top.user_1 == "O'Brien"
        assert top.user_2 == "Zoë, \"Z\""
        assert top.overlapping_song_details[0]["song_name"] == "Don't Stop \"Me\" Now; DROP TABLE"
        assert top.overlapping_artist_details[0]["artist"] == "Sigur Rós 🎵"
        assert top.combined_score == 10 - 1 + 3 - 0.5

    def test_to_dict_is_json_ready(self):
        report = self.engine.overview(base_snapshot())
        payload = json.loads(json.dumps([r.to_dict() for r in report]))
        assert payload[0]["user_1"] == "alice"
        assert payload[0]["combined_score"] == 35.8
        assert len(payload[0]["overlapping_song_details"]) == 3
