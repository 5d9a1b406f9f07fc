"""
Tests for the command-line interface.

Every test runs in an empty working directory and uses the dummy provider.
"""

import json

import pytest
from typer.testing import CliRunner

from mdlingo import __version__
from mdlingo.cli import app

runner = CliRunner()

GLOSSARY = """\
version: 1
languages: [ja, en]
terms:
  - canonical: "webhook"
    type: noun
    translations:
      ja: "Webhook"
      en: "webhook"
    do_not_use:
      en: ["web hook"]
"""


@pytest.fixture(autouse=True)
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


def write(path, content):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


class TestGlobalOptions:

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("init", "translate", "batch", "glossary", "keys", "info"):
            assert command in result.output


class TestInit:

    def test_creates_config(self, workdir):
        result = runner.invoke(app, ["init"])
        assert result.exit_code == 0
        assert (workdir / "mdlingo.config.yaml").exists()

    def test_existing_config_is_an_error(self, workdir):
        write(workdir / "mdlingo.config.yaml", "provider: dummy\nmodel: echo\n")
        result = runner.invoke(app, ["init"])
        assert result.exit_code == 1
        assert "Error:" in result.output
        assert "Hint:" in result.output
        assert "--force" in result.output

    def test_force(self, workdir):
        write(workdir / "mdlingo.config.yaml", "old")
        result = runner.invoke(app, ["init", "--force"])
        assert result.exit_code == 0
        assert "provider:" in (workdir / "mdlingo.config.yaml").read_text(encoding="utf-8")

    def test_custom_config_path(self, workdir):
        result = runner.invoke(app, ["--config", "conf/custom.yaml", "init"])
        assert result.exit_code == 0, result.output
        assert (workdir / "conf" / "custom.yaml").exists()


class TestTranslate:

    def test_translates_with_dummy_provider(self, workdir):
        write(workdir / "doc.md", "---\ntitle: T\n---\n# Hello\n\n`code`\n")
        result = runner.invoke(app, ["translate", "-i", "doc.md", "-l", "ja", "-p", "dummy"])
        assert result.exit_code == 0, result.output
        assert "Translated to" in result.output
        assert (workdir / "doc.ja.md").read_text(encoding="utf-8") == "---\ntitle: T\n---\n# Hello\n\n`code`\n"

    def test_provider_from_config(self, workdir):
        write(workdir / "mdlingo.config.yaml", "provider: dummy\nmodel: prefix\n")
        write(workdir / "doc.md", "Hello\n")
        result = runner.invoke(app, ["translate", "-i", "doc.md", "-l", "ja", "-o", "out/doc.md"])
        assert result.exit_code == 0, result.output
        assert (workdir / "out" / "doc.md").read_text(encoding="utf-8") == "[TRANSLATED] Hello\n"

    def test_execution_log(self, workdir):
        write(workdir / "mdlingo.config.yaml", (
            "provider: dummy\nmodel: echo\nlog:\n  enabled: true\n  path: logs/calls.log\n"
        ))
        write(workdir / "doc.md", "Hello\n")
        result = runner.invoke(app, ["translate", "-i", "doc.md", "-l", "ja"])
        assert result.exit_code == 0, result.output
        records = (workdir / "logs" / "calls.log").read_text(encoding="utf-8").splitlines()
        assert json.loads(records[0])["provider"] == "dummy"

    def test_missing_input(self):
        result = runner.invoke(app, ["translate", "-i", "nope.md", "-l", "ja", "-p", "dummy"])
        assert result.exit_code == 1
        assert "Error:" in result.output
        assert "not found" in result.output

    def test_empty_input(self, workdir):
        write(workdir / "empty.md", "\n\n")
        result = runner.invoke(app, ["translate", "-i", "empty.md", "-l", "ja", "-p", "dummy"])
        assert result.exit_code == 1
        assert "empty" in result.output

    def test_undecodable_input(self, workdir):
        (workdir / "bad.md").write_bytes(b"\xff\xfe bad bytes\n")
        result = runner.invoke(app, ["translate", "-i", "bad.md", "-l", "ja", "-p", "dummy"])
        assert result.exit_code == 1
        assert "not valid UTF-8" in result.output
        assert "Hint:" in result.output

    def test_dry_run(self, workdir):
        write(workdir / "doc.md", "Text with `code`.\n")
        result = runner.invoke(app, ["--dry-run", "translate", "-i", "doc.md", "-l", "ja"])
        assert result.exit_code == 0, result.output
        assert "Dry run" in result.output
        assert "doc.ja.md" in result.output
        assert not (workdir / "doc.ja.md").exists()

    def test_unknown_provider(self, workdir):
        write(workdir / "doc.md", "Text\n")
        result = runner.invoke(app, ["translate", "-i", "doc.md", "-l", "ja", "-p", "babelfish"])
        assert result.exit_code == 1
        assert "Unsupported provider" in result.output

    def test_custom_template(self, workdir):
        write(workdir / "doc.md", "Text\n")
        write(workdir / "prompt.md", "Into {{targetLanguage}} please.\n{{content}}")
        result = runner.invoke(app, ["translate", "-i", "doc.md", "-l", "ja", "-p", "dummy", "-t", "prompt.md"])
        assert result.exit_code == 0, result.output


class TestBatch:

    def test_translates_tree(self, workdir):
        write(workdir / "docs" / "en" / "a.md", "A\n")
        write(workdir / "docs" / "en" / "sub" / "b.md", "B\n")
        result = runner.invoke(app, ["batch", "docs/en/**/*.md", "-l", "ja", "-d", "docs/ja", "-p", "dummy"])
        assert result.exit_code == 0, result.output
        assert "[1/2]" in result.output and "[2/2]" in result.output
        assert "Summary" in result.output
        assert (workdir / "docs" / "ja" / "sub" / "b.md").read_text(encoding="utf-8") == "B\n"

    def test_dry_run(self, workdir):
        write(workdir / "docs" / "a.md", "A\n")
        result = runner.invoke(app, ["--dry-run", "batch", "docs/*.md", "-l", "ja"])
        assert result.exit_code == 0, result.output
        assert "Would translate" in result.output
        assert not (workdir / "docs" / "a.ja.md").exists()

    def test_failures_exit_nonzero(self, workdir):
        write(workdir / "docs" / "a.md", "A\n")
        write(workdir / "docs" / "b.md", " \n")
        result = runner.invoke(app, ["batch", "docs/*.md", "-l", "ja", "-p", "dummy"])
        assert result.exit_code == 1
        assert "Errors:" in result.output
        assert (workdir / "docs" / "a.ja.md").exists()

    def test_no_match(self):
        result = runner.invoke(app, ["batch", "missing/*.md", "-l", "ja", "-p", "dummy"])
        assert result.exit_code == 1
        assert "No files matched" in result.output


class TestGlossaryCommands:

    def test_init(self, workdir):
        result = runner.invoke(app, ["glossary", "init"])
        assert result.exit_code == 0
        assert (workdir / "glossary.yaml").exists()
        again = runner.invoke(app, ["glossary", "init"])
        assert again.exit_code == 1
        assert "already exists" in again.output

    def test_check_clean(self, workdir):
        write(workdir / "glossary.yaml", GLOSSARY)
        write(workdir / "doc.md", "Configure the webhook.\n")
        result = runner.invoke(app, ["glossary", "check", "doc.md", "-l", "en"])
        assert result.exit_code == 0
        assert "No glossary issues" in result.output

    def test_check_issues_exit_one(self, workdir):
        write(workdir / "glossary.yaml", GLOSSARY)
        write(workdir / "doc.md", "# Setup\n\nConfigure the web hook.\n")
        result = runner.invoke(app, ["glossary", "check", "doc.md", "-l", "en"])
        assert result.exit_code == 1
        assert "line 3" in result.output
        assert "1 issue(s) found" in result.output

    def test_check_undeclared_language(self, workdir):
        write(workdir / "glossary.yaml", GLOSSARY)
        write(workdir / "doc.md", "Text\n")
        result = runner.invoke(app, ["glossary", "check", "doc.md", "-l", "zh"])
        assert result.exit_code == 1
        assert "not defined in glossary" in result.output

    def test_check_uses_config_glossary(self, workdir):
        write(workdir / "terms" / "g.yaml", GLOSSARY)
        write(workdir / "mdlingo.config.yaml", "provider: dummy\nmodel: echo\nglossary: terms/g.yaml\n")
        write(workdir / "doc.md", "a web hook\n")
        result = runner.invoke(app, ["glossary", "check", "doc.md", "-l", "en"])
        assert result.exit_code == 1

    def test_sync_writes_stubs(self, workdir):
        write(workdir / "glossary.yaml", GLOSSARY.replace("[ja, en]", "[ja, en, zh]"))
        result = runner.invoke(app, ["glossary", "sync"])
        assert result.exit_code == 0, result.output
        assert "Missing translations" in result.output
        assert "Added 1 stub(s)" in result.output
        assert "zh: ''" in (workdir / "glossary.yaml").read_text(encoding="utf-8")

    def test_sync_no_write(self, workdir):
        path = write(workdir / "glossary.yaml", GLOSSARY.replace("[ja, en]", "[ja, en, zh]"))
        result = runner.invoke(app, ["glossary", "sync", "--no-write"])
        assert result.exit_code == 0
        assert path.read_text(encoding="utf-8") == GLOSSARY.replace("[ja, en]", "[ja, en, zh]")

    def test_review_markdown(self, workdir):
        write(workdir / "glossary.yaml", GLOSSARY)
        result = runner.invoke(app, ["glossary", "review"])
        assert result.exit_code == 0
        assert "# Glossary Review Report" in result.output
        assert "### webhook" in result.output

    def test_review_json_file(self, workdir):
        write(workdir / "glossary.yaml", GLOSSARY)
        result = runner.invoke(app, ["glossary", "review", "--format", "json", "-o", "review.json"])
        assert result.exit_code == 0
        data = json.loads((workdir / "review.json").read_text(encoding="utf-8"))
        assert data["summary"] == {"total_terms": 1, "languages": ["ja", "en"]}
        assert data["terms"][0]["canonical"] == "webhook"

    def test_missing_glossary(self):
        result = runner.invoke(app, ["glossary", "review"])
        assert result.exit_code == 1
        assert "glossary init" in result.output


class TestKeysAndInfo:

    def test_keys_list(self):
        result = runner.invoke(app, ["keys", "list"])
        assert result.exit_code == 0
        assert "anthropic" in result.output

    def test_keys_set_and_status(self):
        result = runner.invoke(app, ["keys", "set", "openai"], input="sk-test-1234567890\n")
        assert result.exit_code == 0, result.output
        assert "saved to keyring" in result.output

        status = runner.invoke(app, ["keys", "status", "openai"])
        assert "is set" in status.output
        assert "sk-t...7890" in status.output

    def test_keys_requires_service(self):
        result = runner.invoke(app, ["keys", "status"])
        assert result.exit_code == 1
        assert "Service name required" in result.output

    def test_keys_unknown_action(self):
        result = runner.invoke(app, ["keys", "rotate", "openai"])
        assert result.exit_code == 1

    def test_info(self):
        result = runner.invoke(app, ["info"])
        assert result.exit_code == 0
        assert f"mdlingo v{__version__}" in result.output
        assert "not found" in result.output
