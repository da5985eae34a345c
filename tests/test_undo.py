"""Tests for undo suggestions."""

import pytest

from aiask.core.undo import (
    NO_UNDO_DESCRIPTION,
    UNDO_PATTERNS,
    UndoSuggestion,
    format_suggestion,
    suggest_undo,
)


class TestSuggestUndo:
    @pytest.mark.parametrize(
        "command,expected",
        [
            # git
            ("git commit -m 'message'", "git reset HEAD~1"),
            ("git add file.txt", "git reset file.txt"),
            ("git add .", "git reset ."),
            ("git stash", "git stash pop"),
            ("git stash push", "git stash pop"),
            ("git checkout -b feature", "git checkout - && git branch -d feature"),
            ("git merge main", "git reset --hard HEAD~1"),
            # files
            ("mv old.txt new.txt", "mv new.txt old.txt"),
            ("cp src.txt dest.txt", "rm dest.txt"),
            ("cp -r src/ dest/", "rm -r dest/"),
            ("cp -R src/ dest/", "rm -r dest/"),
            ("cp -a src/ dest/", "rm -r dest/"),
            ("mkdir newdir", "rmdir newdir"),
            ("mkdir -p path/to/dir", "rmdir path/to/dir"),
            ("touch newfile.txt", "rm newfile.txt"),
            ("ln -s target link", "rm link"),
            # packages
            ("apt install nginx", "apt remove nginx"),
            ("apt-get install nginx", "apt-get remove nginx"),
            ("brew install wget", "brew uninstall wget"),
            ("npm install express", "npm uninstall express"),
            ("npm install -g typescript", "npm uninstall -g typescript"),
            ("npm install @types/node", "npm uninstall @types/node"),
            ("pip install requests", "pip uninstall requests"),
            # services
            ("systemctl start nginx", "systemctl stop nginx"),
            ("systemctl stop nginx", "systemctl start nginx"),
            ("systemctl enable nginx", "systemctl disable nginx"),
            # docker
            ("docker run --name mycontainer nginx", "docker stop mycontainer && docker rm mycontainer"),
            ("docker run -d -p 80:80 --name web nginx", "docker stop web && docker rm web"),
            ("docker start mycontainer", "docker stop mycontainer"),
        ],
    )
    def test_known_commands(self, command, expected):
        result = suggest_undo(command)
        assert result.can_undo
        assert result.undo_command == expected
        assert result.original == command

    @pytest.mark.parametrize("command", ["ls -la", "cat file.txt", "echo hello", "", "git status"])
    def test_no_undo_available(self, command):
        result = suggest_undo(command)
        assert result == UndoSuggestion(original=command)
        assert result.can_undo is False
        assert result.undo_command == ""
        assert result.description == NO_UNDO_DESCRIPTION

    def test_input_is_trimmed(self):
        result = suggest_undo("  touch notes.md \n")
        assert result.original == "touch notes.md"
        assert result.undo_command == "rm notes.md"

    def test_npm_global_flag_has_no_double_space(self):
        result = suggest_undo("npm install -g   typescript")
        assert "-g" in result.undo_command
        assert "typescript" in result.undo_command
        assert "  " not in result.undo_command

    def test_plain_copy_does_not_recurse(self):
        assert "rm -r" not in suggest_undo("cp source.txt destination.txt").undo_command

    def test_merge_undo_warns_it_is_destructive(self):
        assert "discards changes" in suggest_undo("git merge feature").description

    def test_first_match_wins(self):
        matching = [p for p in UNDO_PATTERNS if p.pattern.search("systemctl stop nginx")]
        assert len(matching) == 1
        # git commit is listed before anything else that could see "git"
        assert suggest_undo("git commit --amend").undo_command == "git reset HEAD~1"

    @pytest.mark.parametrize("command", ["git commit-tree 4b825dc -m root", "git commit-graph write"])
    def test_git_plumbing_is_not_a_commit(self, command):
        assert suggest_undo(command).can_undo is False

    def test_bare_git_commit(self):
        assert suggest_undo("git commit").undo_command == "git reset HEAD~1"

    def test_undo_is_case_sensitive(self):
        assert suggest_undo("GIT COMMIT -m x").can_undo is False

    def test_idempotent(self):
        assert suggest_undo("cp -r a b") == suggest_undo("cp -r a b")


class TestFormatSuggestion:
    def test_with_undo(self):
        text = format_suggestion(suggest_undo("git commit -m 'test'"))
        assert "To undo:" in text
        assert "git reset HEAD~1" in text
        assert "Undo the last commit" in text
        assert len(text.splitlines()) == 2

    def test_without_undo(self):
        assert format_suggestion(suggest_undo("ls -la")) == ""

    def test_markup_in_command_is_escaped(self):
        text = format_suggestion(UndoSuggestion("x", "rm [bold]x", "Remove", True))
        assert "\\[bold]" in text
