"""University results portal: grade-sheet parsing, transcripts, GPA and ranking."""

__version__ = "1.0.0"
