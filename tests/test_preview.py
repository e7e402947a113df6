"""Tests for composing the sandboxed preview document."""

from codeharvest.filesystem import FileRecord
from codeharvest.preview import (
    compose_web_sandbox,
    find_entry_document,
    inject_script,
    inject_style,
    sandbox_csp,
    sandbox_iframe,
)

PAGE = "<html><head><title>t</title></head><body><p>x</p></body></html>"


class TestInjectStyle:
    def test_before_head_close(self):
        out = inject_style(PAGE, "p {}")
        assert out.index("<style>\np {}\n</style>") < out.index("</head>")
        assert out.startswith("<html><head><title>t</title><style>")

    def test_before_body_open_without_head(self):
        out = inject_style("<body><p>x</p></body>", "p {}")
        assert out == "<style>\np {}\n</style>\n<body><p>x</p></body>"

    def test_prepended_without_anchors(self):
        assert inject_style("<p>x</p>", "p {}") == "<style>\np {}\n</style>\n<p>x</p>"

    def test_anchor_case_insensitive(self):
        out = inject_style("<HEAD></HEAD><BODY></BODY>", "a {}")
        assert out.index("<style>") < out.index("</HEAD>")
        assert out.index("<style>") > out.index("<HEAD>")


class TestInjectScript:
    def test_before_body_close(self):
        out = inject_script(PAGE, "go()")
        assert "<script>\ngo()\n</script>\n</body>" in out

    def test_appended_without_body(self):
        assert inject_script("<p>x</p>", "go()") == "<p>x</p>\n<script>\ngo()\n</script>"


class TestCompose:
    def test_no_html_returns_none(self):
        records = [FileRecord("style.css", "p {}", "css"), FileRecord("app.js", "go()", "javascript")]
        assert compose_web_sandbox(records) is None

    def test_empty_returns_none(self):
        assert compose_web_sandbox([]) is None

    def test_html_only_unchanged(self):
        assert compose_web_sandbox([FileRecord("index.html", PAGE, "html")]) == PAGE

    def test_injects_in_listing_order(self):
        records = [
            FileRecord("index.html", PAGE, "html"),
            FileRecord("a.css", "a {}", "css"),
            FileRecord("b.css", "b {}", "css"),
            FileRecord("one.js", "one()", "javascript"),
            FileRecord("two.js", "two()", "javascript"),
        ]
        out = compose_web_sandbox(records)
        assert out.index("a {}") < out.index("b {}") < out.index("</head>")
        assert out.index("<body>") < out.index("one()") < out.index("two()") < out.index("</body>")

    def test_json_not_treated_as_script(self):
        records = [FileRecord("index.html", PAGE, "html"), FileRecord("data.json", "{}", "json")]
        assert "<script>" not in compose_web_sandbox(records)

    def test_other_files_ignored(self):
        records = [FileRecord("index.html", PAGE, "html"), FileRecord("main.py", "x", "python")]
        assert compose_web_sandbox(records) == PAGE

    def test_htm_document(self):
        out = compose_web_sandbox([FileRecord("page.htm", "<p>x</p>"), FileRecord("s.css", "p {}")])
        assert out == "<style>\np {}\n</style>\n<p>x</p>"

    def test_scss_not_inlined(self):
        records = [FileRecord("index.html", PAGE, "html"), FileRecord("s.scss", "$a: 1;", "scss")]
        assert compose_web_sandbox(records) == PAGE


class TestEntryDocument:
    records = [
        FileRecord("index.html", "<p>1</p>", "html"),
        FileRecord("about.html", "<p>2</p>", "html"),
    ]

    def test_first_html_by_default(self):
        assert find_entry_document(self.records).filename == "index.html"

    def test_named_entry(self):
        assert compose_web_sandbox(self.records, entry="about.html") == "<p>2</p>"

    def test_unknown_entry(self):
        assert compose_web_sandbox(self.records, entry="missing.html") is None


class TestSandboxBoundary:
    def test_csp(self):
        assert sandbox_csp() == "sandbox allow-scripts allow-forms"

    def test_iframe_escapes_document(self):
        iframe = sandbox_iframe('<p class="x">&</p>')
        assert 'srcdoc="&lt;p class=&quot;x&quot;&gt;&amp;&lt;/p&gt;"' in iframe
        assert 'sandbox="allow-scripts allow-forms"' in iframe
        assert "allow-same-origin" not in iframe
