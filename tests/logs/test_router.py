from __future__ import annotations

import io

from sim_pipeline.logs import LogRouter, SubstringClassifier, split_lines


def test_split_lines_drops_blanks() -> None:
    assert split_lines("  a \n\n   \n b\r\n") == ["a", "b"]
    assert split_lines("   \t ") == []


def test_router_dispatches_each_tag(consoles) -> None:
    out, err = consoles
    sink = io.StringIO()
    router = LogRouter(
        classifier=SubstringClassifier(),
        console=out,
        err_console=err,
        file_sink=sink,
    )

    router.route(
        "stdout",
        "[t INF] release:\n"
        "[t INF] release: file: score=3\n"
        "[t INF] release (1): hidden\n"
        "[t INF] release: hello\n"
        "\n",
    )
    router.route("stderr", "  boom  \n")

    assert sink.getvalue() == "score=3\n"
    assert out.file.getvalue() == "[t INF] [A] hello\n"
    assert err.file.getvalue() == "boom\n"

    m = router.metrics()
    assert m["lines_drop"] == 2
    assert m["lines_file_sink"] == 1
    assert m["lines_console_a"] == 1
    assert m["lines_stderr"] == 1


def test_router_without_file_sink_discards_file_lines(consoles) -> None:
    out, err = consoles
    router = LogRouter(classifier=SubstringClassifier(), console=out, err_console=err)
    routed = router.route_stdout("x file: y")
    assert [c.text for c in routed] == ["y"]
    assert out.file.getvalue() == ""
