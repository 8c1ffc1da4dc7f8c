"""
Tests for the command-line entry point.
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import main


class TestCommandLine:
    """Tests for main.py modes."""

    def test_mode_is_required(self):
        with pytest.raises(SystemExit):
            main.build_parser().parse_args([])

    def test_modes_are_exclusive(self):
        with pytest.raises(SystemExit):
            main.build_parser().parse_args(['--demo', '--single'])

    def test_config(self, capsys):
        main.main(['--config'])
        out = capsys.readouterr().out

        assert "Window Size: 4" in out
        assert "Sequence Space: 8" in out

    def test_fast_demo(self, capsys):
        main.main(['--demo', '--fast', '--loss', '0.0', '--duration', '10'])
        out = capsys.readouterr().out

        assert "Sending first batch of data" in out
        assert "Sending second batch of data" in out
        assert ("Delivered Data: [Hello, World, Sliding, Window, "
                "Protocol, Python, Implementation]") in out

    def test_demo_statistics(self, capsys):
        args = main.build_parser().parse_args(
            ['--demo', '--fast', '--loss', '0.3', '--seq-space', '8'])
        stats = main.run_demo(args)

        assert not stats['running']
        assert stats['receiver']['delivered_items'] <= 7

    def test_demo_honours_timeout(self):
        args = main.build_parser().parse_args(
            ['--demo', '--fast', '--timeout', '0.25', '--seq-space', '8'])
        assert main.protocol_config(args).timeout == 0.25
        assert not main.run_demo(args)['running']

    def test_invalid_window_is_a_usage_error(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main.main(['--demo', '--fast', '--window', '8'])

        assert excinfo.value.code == 2
        assert "Sequence space must be larger" in capsys.readouterr().err

    def test_single(self, capsys):
        main.main(['--single', '--items', '20', '--loss', '0.1'])
        out = capsys.readouterr().out

        assert "Complete: True" in out
        assert "Data Valid: True" in out

    def test_visualize_missing_csv(self, tmp_path, capsys):
        main.main(['--visualize', '--csv', str(tmp_path / "missing.csv")])

        assert "Results file not found" in capsys.readouterr().out


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
