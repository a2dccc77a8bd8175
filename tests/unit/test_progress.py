from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

from answerboard.services.progress import ProgressTracker


def test_disabled_without_tty():
    with patch("answerboard.services.progress.is_tty_enabled", return_value=False):
        with ProgressTracker(2) as tracker:
            tracker.start_file(Path("a.csv"))
            tracker.finish_file(success=1)
        assert tracker.pbar is None
        assert tracker.current_file == 1


def test_tty_uses_tqdm():
    bar = MagicMock()
    with patch("answerboard.services.progress.is_tty_enabled", return_value=True), \
            patch("answerboard.services.progress.tqdm", return_value=bar) as tqdm_cls:
        tracker = ProgressTracker(3, description="Importing")
        tracker.start_file(Path("a.csv"))
        tracker.finish_file(success=1, failed=0)
        tracker.close()
    tqdm_cls.assert_called_once()
    assert tqdm_cls.call_args.kwargs["total"] == 3
    bar.set_description.assert_any_call("Importing (a.csv)")
    bar.update.assert_called_once_with(1)
    bar.set_postfix.assert_called_once_with(success=1, failed=0)
    bar.close.assert_called_once()
