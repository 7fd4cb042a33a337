from __future__ import annotations

import pytest

from sim_pipeline.logs import LogTag, SubstringClassifier


@pytest.fixture
def clf() -> SubstringClassifier:
    return SubstringClassifier()


def test_heartbeat_is_dropped(clf: SubstringClassifier) -> None:
    assert clf.classify("[12:00:00 INF] release:").tag is LogTag.DROP
    assert clf.classify("[12:00:00 INF] release:   ").tag is LogTag.DROP


def test_heartbeat_with_payload_is_displayed(clf: SubstringClassifier) -> None:
    c = clf.classify("[12:00:00 INF] release: thrusters online")
    assert c.tag is LogTag.CONSOLE_A
    assert c.text == "[12:00:00 INF] [A] thrusters online"


def test_file_channel_payload(clf: SubstringClassifier) -> None:
    c = clf.classify("[12:00:00 INF] release: file: /tmp/log.txt")
    assert c.tag is LogTag.FILE_SINK
    assert c.text == "/tmp/log.txt"


def test_file_channel_wins_over_slot_b(clf: SubstringClassifier) -> None:
    c = clf.classify("release (1): file:  x=1 ")
    assert c.tag is LogTag.FILE_SINK
    assert c.text == "x=1"


def test_slot_b_is_dropped(clf: SubstringClassifier) -> None:
    assert clf.classify("foo release (1): bar").tag is LogTag.DROP


def test_slot_a_is_relabeled(clf: SubstringClassifier) -> None:
    c = clf.classify("foo release: bar")
    assert c.tag is LogTag.CONSOLE_A
    assert c.text == "foo [A] bar"


def test_only_first_marker_is_relabeled(clf: SubstringClassifier) -> None:
    assert clf.classify("release: said release: twice").text == "[A] said release: twice"


def test_unmarked_line_passes_through(clf: SubstringClassifier) -> None:
    c = clf.classify("Simulation tick 42")
    assert c.tag is LogTag.CONSOLE
    assert c.text == "Simulation tick 42"


def test_line_ending_in_marker_letter_is_not_heartbeat(clf: SubstringClassifier) -> None:
    # no INF] marker: the whole line is compared, not its last character
    assert clf.classify("]").tag is LogTag.CONSOLE


def test_show_slot_b_surfaces_second_slot() -> None:
    c = SubstringClassifier(show_slot_b=True).classify("foo release (1): bar")
    assert c.tag is LogTag.CONSOLE_B
    assert c.text == "foo [B] bar"
    assert c.tag.is_console
