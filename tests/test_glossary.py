"""
Tests for glossary loading, checking, sync and review.
"""

import json

import pytest
import yaml

from mdlingo.errors import (
    GlossaryExistsError,
    InvalidConfigError,
    NotFoundError,
    UnsupportedLanguageError,
)
from mdlingo.glossary import (
    apply_stubs,
    check_data,
    check_document,
    check_glossary,
    check_text,
    glossary_prompt,
    init_glossary,
    load_glossary,
    require_glossary,
    review_glossary,
    sync_glossary,
)
from mdlingo.glossary.checker import covered_by_canonical


BASIC_GLOSSARY = """\
version: 1
languages: [ja, en]
terms:
  - canonical: "API"
    type: noun
    translations:
      ja: "API"
      en: "API"
    do_not_use:
      ja: ["ＡＰＩ", "えーぴーあい"]
  - canonical: "webhook"
    type: noun
    translations:
      ja: "Webhook"
      en: "webhook"
    do_not_use:
      ja: ["ウェブフック"]
      en: ["web hook", "Web Hook"]
"""

HOOK_GLOSSARY = """\
version: 1
languages: [en]
terms:
  - canonical: "webhook"
    type: noun
    translations:
      en: "webhook"
    do_not_use:
      en: ["web hook", "hook"]
"""

LINK_GLOSSARY = """\
version: 1
languages: [ja, en]
terms:
  - canonical: "GeonicDB"
    type: noun
    translations:
      ja: "GeonicDB"
      en: "GeonicDB"
    do_not_use:
      ja: ["geonicdb"]
      en: ["geonicdb"]
"""

SUBSTRING_GLOSSARY = """\
version: 1
languages: [ja]
terms:
  - canonical: "Subscription"
    type: noun
    translations:
      ja: "サブスクリプション"
    do_not_use:
      ja: ["サブスク"]
  - canonical: "Context Broker"
    type: noun
    translations:
      ja: "コンテキストブローカー"
    do_not_use:
      ja: ["ブローカー"]
"""

PARTIAL_GLOSSARY = """\
version: 1
languages: [ja, en, zh]
terms:
  - canonical: "API"
    type: noun
    translations:
      ja: "API"
      en: "API"
"""


def write(path, content):
    path.write_text(content, encoding="utf-8")
    return path


def find_term(glossary, canonical):
    return next(term for term in glossary.terms if term.canonical == canonical)


@pytest.fixture
def basic(tmp_path):
    return write(tmp_path / "glossary.yaml", BASIC_GLOSSARY)


@pytest.fixture
def hook(tmp_path):
    return require_glossary(write(tmp_path / "glossary-hook.yaml", HOOK_GLOSSARY))


@pytest.fixture
def link(tmp_path):
    return require_glossary(write(tmp_path / "glossary-link.yaml", LINK_GLOSSARY))


@pytest.fixture
def substring(tmp_path):
    return require_glossary(write(tmp_path / "glossary-substr.yaml", SUBSTRING_GLOSSARY))


class TestLoadGlossary:

    def test_valid(self, basic):
        glossary = load_glossary(basic)
        assert glossary.version == 1
        assert glossary.languages == ["ja", "en"]
        assert len(glossary) == 2
        api = find_term(glossary, "API")
        assert api.translation("ja") == "API"
        assert api.forbidden("ja") == ["ＡＰＩ", "えーぴーあい"]

    def test_missing_file_returns_none(self, tmp_path):
        assert load_glossary(tmp_path / "nonexistent.yaml") is None

    def test_require_missing_file(self, tmp_path):
        with pytest.raises(NotFoundError):
            require_glossary(tmp_path / "nonexistent.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = write(tmp_path / "g.yaml", "{ invalid: yaml: content:")
        with pytest.raises(InvalidConfigError):
            load_glossary(path)

    def test_missing_terms(self, tmp_path):
        path = write(tmp_path / "g.yaml", "version: 1\nlanguages: [ja, en]\n")
        with pytest.raises(InvalidConfigError, match="'terms'"):
            load_glossary(path)

    def test_missing_languages(self, tmp_path):
        path = write(tmp_path / "g.yaml", "version: 1\nterms: []\n")
        with pytest.raises(InvalidConfigError, match="'languages'"):
            load_glossary(path)

    def test_undeclared_language(self, tmp_path):
        content = "version: 1\nlanguages: [ja]\nterms:\n  - canonical: X\n    translations: {fr: x}\n"
        with pytest.raises(InvalidConfigError, match="undeclared language 'fr'"):
            load_glossary(write(tmp_path / "g.yaml", content))

    def test_duplicate_canonical(self, tmp_path):
        content = "version: 1\nlanguages: [ja]\nterms:\n  - canonical: X\n  - canonical: X\n"
        with pytest.raises(InvalidConfigError, match="duplicate"):
            load_glossary(write(tmp_path / "g.yaml", content))

    def test_single_forbidden_string_accepted(self, tmp_path):
        content = "version: 1\nlanguages: [ja]\nterms:\n  - canonical: X\n    do_not_use: {ja: bad}\n"
        glossary = load_glossary(write(tmp_path / "g.yaml", content))
        assert find_term(glossary, "X").forbidden("ja") == ["bad"]


class TestInitGlossary:

    def test_creates_parseable_skeleton(self, tmp_path):
        path = init_glossary(tmp_path / "glossary.yaml")
        content = path.read_text(encoding="utf-8")
        for key in ("version:", "languages:", "terms:", "canonical:", "translations:", "do_not_use:"):
            assert key in content
        glossary = load_glossary(path)
        assert glossary.version == 1
        assert len(glossary) == 1

    def test_refuses_existing_file(self, tmp_path):
        path = write(tmp_path / "glossary.yaml", "existing content")
        with pytest.raises(GlossaryExistsError, match="already exists"):
            init_glossary(path)
        assert path.read_text(encoding="utf-8") == "existing content"

    def test_force_overwrites(self, tmp_path):
        path = write(tmp_path / "glossary.yaml", "old content")
        init_glossary(path, force=True)
        assert "version:" in path.read_text(encoding="utf-8")


class TestCheckGlossary:

    def test_clean_document(self, tmp_path, basic):
        doc = write(tmp_path / "doc.md", "# API Documentation\n\nThis is about the API and Webhook.\n")
        assert check_glossary(doc, basic, "en") == []

    def test_japanese_document(self, tmp_path, basic):
        doc = write(
            tmp_path / "doc.ja.md",
            "# ＡＰＩドキュメント\n\nこれはＡＰＩとウェブフックについてのドキュメントです。\n",
        )
        issues = check_glossary(doc, basic, "ja")
        forbidden = [issue.forbidden for issue in issues]
        assert forbidden == ["ＡＰＩ", "ＡＰＩ", "ウェブフック"]
        assert [issue.line for issue in issues] == [1, 3, 3]

    def test_english_document(self, tmp_path, basic):
        doc = write(tmp_path / "doc.md", "# Documentation\n\nUse web hook instead of webhook.\n")
        issues = check_glossary(doc, basic, "en")
        assert len(issues) == 1
        assert issues[0].forbidden == "web hook"
        assert issues[0].canonical == "webhook"
        assert issues[0].suggestion == "webhook"
        assert issues[0].column == 5

    def test_line_number(self, tmp_path, basic):
        doc = write(tmp_path / "doc.ja.md", "# Title\n\nＡＰＩの説明\n")
        issues = check_glossary(doc, basic, "ja")
        assert issues[0].line == 3
        assert issues[0].location == "line 3"

    def test_canonical_in_issue(self, tmp_path, basic):
        doc = write(tmp_path / "doc.ja.md", "えーぴーあいを使ってください。\n")
        issues = check_glossary(doc, basic, "ja")
        assert issues[0].canonical == "API"

    def test_missing_glossary(self, tmp_path):
        doc = write(tmp_path / "doc.md", "some content")
        with pytest.raises(NotFoundError):
            check_glossary(doc, tmp_path / "nonexistent.yaml", "en")

    def test_missing_document(self, tmp_path, basic):
        with pytest.raises(NotFoundError, match="not found"):
            check_glossary(tmp_path / "nonexistent.md", basic, "en")

    def test_undeclared_language(self, tmp_path, basic):
        doc = write(tmp_path / "doc.md", "some content\n")
        with pytest.raises(UnsupportedLanguageError, match="(?i)not defined in glossary"):
            check_glossary(doc, basic, "zh")


class TestSuppressedContexts:

    def test_fenced_code(self, hook):
        assert check_text("Text before.\n\n```\nweb hook example\n```\n\nText after.\n", hook, "en") == []

    def test_inline_code(self, hook):
        assert check_text("Use `web hook` syntax here.\n", hook, "en") == []

    def test_url(self, hook):
        assert check_text("See [docs](https://example.com/hook-events/list) for info.\n", hook, "en") == []

    def test_bare_url(self, hook):
        assert check_text("Docs at https://example.com/hook\n", hook, "en") == []

    def test_frontmatter(self, hook):
        assert check_text("---\ntitle: web hook reference guide\n---\n\nBody is clean.\n", hook, "en") == []

    def test_line_numbers_after_fenced_block(self, hook):
        issues = check_text("```\nweb hook in code\n```\n\nThis hook should be flagged.\n", hook, "en")
        assert len(issues) == 1
        assert issues[0].forbidden == "hook"
        assert issues[0].line == 5

    def test_line_numbers_after_frontmatter(self, hook):
        issues = check_text("---\ntitle: x\n---\n\nA hook here.\n", hook, "en")
        assert [issue.line for issue in issues] == [5]


class TestLinkTargets:

    def test_absolute_path(self, link):
        assert check_text("[なぜ GeonicDB を選ぶのか？](/ja/introduction/why-geonicdb)\n", link, "ja") == []

    def test_relative_path(self, link):
        assert check_text("[Docs](./why-geonicdb/overview)\n", link, "en") == []

    def test_parent_path(self, link):
        assert check_text("[Back](../geonicdb-intro)\n", link, "en") == []

    def test_link_text_still_flagged(self, link):
        issues = check_text("[geonicdb でできること](/docs/overview)\n", link, "en")
        assert len(issues) == 1
        assert issues[0].forbidden == "geonicdb"

    def test_plain_text_flagged(self, link):
        issues = check_text("このドキュメントは geonicdb を説明します。\n", link, "en")
        assert len(issues) == 1

    def test_absolute_url_in_link(self, link):
        assert check_text("See [docs](https://example.com/geonicdb/intro) for info.\n", link, "en") == []


class TestCanonicalOverlap:

    def test_part_of_canonical_not_flagged(self, substring):
        assert check_text("サブスクリプションモデルを採用しています。\n", substring, "ja") == []
        assert check_text("コンテキストブローカーを設定します。\n", substring, "ja") == []

    def test_standalone_flagged(self, substring):
        issues = check_text("サブスク管理画面を開きます。\n", substring, "ja")
        assert [issue.forbidden for issue in issues] == ["サブスク"]
        issues = check_text("ブローカーに接続します。\n", substring, "ja")
        assert [issue.forbidden for issue in issues] == ["ブローカー"]

    def test_standalone_next_to_canonical(self, substring):
        issues = check_text("サブスクリプションとサブスクの違いを説明します。\n", substring, "ja")
        assert len(issues) == 1
        assert issues[0].forbidden == "サブスク"
        assert issues[0].column == 11

    def test_covered_by_canonical(self):
        text = "xコンテキストブローカーy"
        pos = text.index("ブローカー")
        assert covered_by_canonical(text, pos, "ブローカー", "コンテキストブローカー")
        assert not covered_by_canonical("ブローカー", 0, "ブローカー", "コンテキストブローカー")
        assert not covered_by_canonical(text, pos, "ブローカー", None)


class TestStructuredDocuments:

    def test_json_key_paths(self, tmp_path, basic):
        doc = tmp_path / "messages.json"
        doc.write_text(
            json.dumps({"nav": {"title": "ＡＰＩ", "items": ["ok", "ウェブフック設定"]}}, ensure_ascii=False),
            encoding="utf-8",
        )
        issues = check_document(doc, load_glossary(basic), "ja")
        assert [(i.forbidden, i.key_path) for i in issues] == [
            ("ＡＰＩ", "nav.title"),
            ("ウェブフック", "nav.items[1]"),
        ]
        assert issues[0].line is None
        assert issues[0].location == "nav.title"

    def test_yaml_document(self, tmp_path, basic):
        doc = write(tmp_path / "strings.yml", "greeting: Use the web hook\ncount: 3\n")
        issues = check_document(doc, load_glossary(basic), "en")
        assert [(i.forbidden, i.key_path) for i in issues] == [("web hook", "greeting")]

    def test_check_data_skips_non_strings(self, basic):
        data = {"a": 1, "b": None, "c": [True, "ＡＰＩ"]}
        issues = check_data(data, load_glossary(basic), "ja")
        assert [i.key_path for i in issues] == ["c[1]"]

    def test_unparseable_json(self, tmp_path, basic):
        doc = write(tmp_path / "broken.json", "{not json")
        with pytest.raises(InvalidConfigError):
            check_document(doc, load_glossary(basic), "ja")


class TestSyncGlossary:

    def test_coverage(self, tmp_path):
        path = write(
            tmp_path / "glossary.yaml",
            BASIC_GLOSSARY,
        )
        result = sync_glossary(path)
        assert result.total_terms == 2
        assert len(result.terms_by_language["ja"]) == 2
        assert len(result.terms_by_language["en"]) == 2
        assert result.missing_translations == []
        assert result.stubs_created == 0
        assert result.coverage("ja") == 1.0

    def test_missing_translations(self, tmp_path):
        path = write(tmp_path / "glossary.yaml", PARTIAL_GLOSSARY)
        result = sync_glossary(path, write_stubs=False)
        assert result.missing_translations[0].canonical == "API"
        assert result.missing_translations[0].missing_languages == ["zh"]
        assert result.coverage("zh") == 0.0
        assert "zh" not in find_term(load_glossary(path), "API").translations

    def test_writes_stubs(self, tmp_path):
        path = write(tmp_path / "glossary.yaml", PARTIAL_GLOSSARY)
        result = sync_glossary(path)
        assert result.stubs_created == 1
        reloaded = load_glossary(path)
        assert find_term(reloaded, "API").translations["zh"] == ""
        assert find_term(reloaded, "API").translation("zh") is None

    def test_stub_written_file_keeps_unicode(self, tmp_path):
        content = PARTIAL_GLOSSARY + "    do_not_use:\n      ja: [\"ＡＰＩ\"]\n"
        path = write(tmp_path / "glossary.yaml", content)
        sync_glossary(path)
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        assert raw["terms"][0]["do_not_use"]["ja"] == ["ＡＰＩ"]
        assert "ＡＰＩ" in path.read_text(encoding="utf-8")

    def test_stub_write_keeps_other_keys(self, tmp_path):
        content = PARTIAL_GLOSSARY + "    do_not_use: {}\n    notes: keep me\nowner: docs-team\n"
        path = write(tmp_path / "glossary.yaml", content)
        sync_glossary(path)
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        assert raw["owner"] == "docs-team"
        assert raw["terms"][0]["notes"] == "keep me"
        assert raw["terms"][0]["do_not_use"] == {}
        assert raw["terms"][0]["translations"] == {"ja": "API", "en": "API", "zh": ""}

    def test_apply_stubs_leaves_existing(self, tmp_path):
        glossary = load_glossary(write(tmp_path / "glossary.yaml", PARTIAL_GLOSSARY))
        assert apply_stubs(glossary) == 1
        assert apply_stubs(glossary) == 0

    def test_missing_file(self, tmp_path):
        with pytest.raises(NotFoundError):
            sync_glossary(tmp_path / "nonexistent.yaml")


class TestReviewGlossary:

    def test_terms_and_summary(self, basic):
        report = review_glossary(basic)
        assert len(report.terms) == 2
        assert report.summary == {"total_terms": 2, "languages": ["ja", "en"]}
        api = next(t for t in report.terms if t.canonical == "API")
        assert api.type == "noun"
        assert "ＡＰＩ" in api.forbidden("ja")

    def test_markdown(self, basic):
        md = review_glossary(basic).to_markdown()
        assert md.startswith("# Glossary Review Report")
        assert "**Total Terms:** 2" in md
        assert "**Languages:** ja, en" in md
        assert "## Terms" in md
        assert "### API" in md
        assert "### webhook" in md
        assert "- **Type:** noun" in md
        assert "  - `ja`: Webhook" in md
        assert "- **Do not use:**" in md
        assert "  - `en`: web hook, Web Hook" in md

    def test_missing_file(self, tmp_path):
        with pytest.raises(NotFoundError):
            review_glossary(tmp_path / "nonexistent.yaml")


class TestGlossaryPrompt:

    def test_lists_relevant_terms(self, basic):
        prompt = glossary_prompt(load_glossary(basic), "en")
        assert '"webhook" → "webhook" (do NOT use: "web hook", "Web Hook")' in prompt
        assert '"API" → "API"' in prompt

    def test_empty_when_nothing_applies(self, tmp_path):
        glossary = load_glossary(write(tmp_path / "g.yaml", PARTIAL_GLOSSARY))
        assert glossary_prompt(glossary, "zh") == ""
