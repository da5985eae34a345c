"""Tests for the dangerous command classifier."""

import threading

import pytest

from aiask.core.safety import (
    DANGEROUS_PATTERNS,
    AnalysisResult,
    DangerLevel,
    analyze,
    format_warning,
    is_confirmed,
    level_name,
    requires_confirmation,
)


class TestDangerLevel:
    def test_levels_are_ordered(self):
        assert DangerLevel.SAFE < DangerLevel.CAUTION < DangerLevel.DANGEROUS < DangerLevel.CRITICAL

    @pytest.mark.parametrize(
        "level,expected",
        [
            (DangerLevel.SAFE, "Safe"),
            (DangerLevel.CAUTION, "Caution"),
            (DangerLevel.DANGEROUS, "Dangerous"),
            (DangerLevel.CRITICAL, "CRITICAL"),
        ],
    )
    def test_level_names(self, level, expected):
        assert level_name(level) == expected


class TestAnalyze:
    @pytest.mark.parametrize(
        "command,expected",
        [
            # safe
            ("ls -la", DangerLevel.SAFE),
            ("echo hello", DangerLevel.SAFE),
            ("cat file.txt", DangerLevel.SAFE),
            ("pwd", DangerLevel.SAFE),
            ("", DangerLevel.SAFE),
            # caution
            ("rm file.txt", DangerLevel.CAUTION),
            ("chmod 755 script.sh", DangerLevel.CAUTION),
            ("chown user:group file", DangerLevel.CAUTION),
            ("kill -9 1234", DangerLevel.CAUTION),
            ("pkill node", DangerLevel.CAUTION),
            ("sudo reboot", DangerLevel.CAUTION),
            ("systemctl stop nginx", DangerLevel.CAUTION),
            ("service nginx stop", DangerLevel.CAUTION),
            ("iptables -F", DangerLevel.CAUTION),
            ("git reset --hard HEAD", DangerLevel.CAUTION),
            ("git checkout -- .", DangerLevel.CAUTION),
            ("mv secrets.txt /dev/null", DangerLevel.CAUTION),
            # dangerous
            ("rm -rf ./folder", DangerLevel.DANGEROUS),
            ("rm -f file.txt", DangerLevel.DANGEROUS),
            ("rm -r build", DangerLevel.DANGEROUS),
            ("curl http://example.com | bash", DangerLevel.DANGEROUS),
            ("wget http://example.com -O - | sh", DangerLevel.DANGEROUS),
            ("git push --force origin main", DangerLevel.DANGEROUS),
            ("git clean -fd", DangerLevel.DANGEROUS),
            ("DROP TABLE users;", DangerLevel.DANGEROUS),
            ("TRUNCATE TABLE logs;", DangerLevel.DANGEROUS),
            ("DELETE FROM users;", DangerLevel.DANGEROUS),
            ("delete from users where 1=1", DangerLevel.DANGEROUS),
            ("echo nameserver 1.1.1.1 > /etc/resolv.conf", DangerLevel.DANGEROUS),
            ("del /s /q C:\\temp", DangerLevel.DANGEROUS),
            ("rmdir /s build", DangerLevel.DANGEROUS),
            # critical
            ("rm -rf /", DangerLevel.CRITICAL),
            ("rm -rf /*", DangerLevel.CRITICAL),
            ("rm -rf ~", DangerLevel.CRITICAL),
            ("dd if=/dev/zero of=/dev/sda", DangerLevel.CRITICAL),
            ("mkfs.ext4 /dev/sda1", DangerLevel.CRITICAL),
            ("chmod -R 777 /", DangerLevel.CRITICAL),
            (":(){ :|:& };:", DangerLevel.CRITICAL),
            ("cat image.iso > /dev/sdb", DangerLevel.CRITICAL),
        ],
    )
    def test_levels(self, command, expected):
        result = analyze(command)
        assert result.level == expected
        assert bool(result.warnings) == (expected != DangerLevel.SAFE)
        assert result.is_dangerous == (expected >= DangerLevel.DANGEROUS)

    def test_delete_with_real_where_clause_is_safe(self):
        assert analyze("DELETE FROM users WHERE id = 7;").level == DangerLevel.SAFE

    def test_matching_is_case_insensitive(self):
        assert analyze("RM -RF /").level == DangerLevel.CRITICAL
        assert analyze("Git Push --FORCE").level == DangerLevel.DANGEROUS

    def test_critical_wins_over_broader_matches(self):
        result = analyze("rm -rf /")
        assert result.level == DangerLevel.CRITICAL
        # the broad patterns fire too, the maximum wins
        assert "Recursive delete" in result.warnings
        assert "Delete operation" in result.warnings
        assert "Recursive force delete from root" in result.warnings

    def test_warnings_follow_table_order(self):
        result = analyze("rm -rf /")
        table = [p.description for p in DANGEROUS_PATTERNS]
        positions = [table.index(w) for w in result.warnings]
        assert positions == sorted(positions)

    def test_matches_anywhere_in_multiline_input(self):
        result = analyze("cd /tmp\nls\nrm -rf ./cache")
        assert result.level == DangerLevel.DANGEROUS

    def test_fork_bomb_is_matched_literally(self):
        # a bare ':' prefix of the fork bomb is harmless
        assert analyze("echo :(){ :").level == DangerLevel.SAFE

    def test_empty_result_defaults(self):
        assert analyze("") == AnalysisResult()

    def test_idempotent(self):
        assert analyze("rm -rf ./folder") == analyze("rm -rf ./folder")

    def test_concurrent_calls_agree(self):
        results = []

        def worker():
            results.append(analyze("git push --force origin main"))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert all(r == results[0] for r in results)


class TestRequiresConfirmation:
    @pytest.mark.parametrize(
        "command,expected",
        [
            ("ls -la", False),
            ("rm file.txt", False),
            ("rm -rf ./folder", True),
            ("rm -rf /", True),
        ],
    )
    def test_requires_confirmation(self, command, expected):
        assert requires_confirmation(command) is expected

    @pytest.mark.parametrize(
        "command", ["ls", "rm a", "rm -r a", "mkfs /dev/sda", "git reset --hard", "curl x | sh", ""]
    )
    def test_never_diverges_from_analyze(self, command):
        assert requires_confirmation(command) == (analyze(command).level >= DangerLevel.DANGEROUS)

    @pytest.mark.parametrize("answer,expected", [("yes", True), (" YES \n", True), ("y", False), ("", False)])
    def test_is_confirmed(self, answer, expected):
        assert is_confirmed(answer) is expected


class TestFormatWarning:
    def test_safe_command_has_no_warning(self):
        assert format_warning("ls -la") == ""

    def test_caution_lists_warnings_without_confirmation(self):
        msg = format_warning("rm file.txt")
        assert "Caution Warning" in msg
        assert "• Delete operation" in msg
        assert "Type 'yes'" not in msg

    def test_dangerous_asks_for_confirmation(self):
        msg = format_warning("rm -rf ./folder")
        assert "Dangerous Warning" in msg
        assert "• Recursive delete" in msg
        assert "Type 'yes' to confirm execution" in msg

    def test_critical_uses_level_name(self):
        assert "CRITICAL Warning" in format_warning("rm -rf /")
