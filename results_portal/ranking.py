"""
Population ranking by CGPA.

Competition ranking: students with equal CGPA share a rank and the next
rank skips ahead, so CGPAs [3.9, 3.9, 3.5] rank as [1, 1, 3].
"""

from typing import Iterable, List, Optional

from results_portal.models import StudentTranscript


def sort_key(transcript: StudentTranscript):
    # Index number keeps the order of tied students deterministic
    return (-transcript.cgpa, transcript.index_number)


def rank_transcripts(transcripts: Iterable[StudentTranscript]) -> List[StudentTranscript]:
    """Sorted copies of the transcripts with their rank filled in."""
    ordered = sorted(transcripts, key=sort_key)

    ranked: List[StudentTranscript] = []
    for position, transcript in enumerate(ordered, 1):
        if ranked and transcript.cgpa == ranked[-1].cgpa:
            rank = ranked[-1].rank
        else:
            rank = position
        ranked.append(transcript.with_rank(rank))
    return ranked


def rank_of(index_number: str, transcripts: Iterable[StudentTranscript]) -> Optional[int]:
    """
    Rank of one student within the whole population.

    Re-sorts the population on every call; at a few hundred students this is
    cheap enough and keeps single-student ranks identical to the list view.
    """
    for transcript in rank_transcripts(transcripts):
        if transcript.index_number == index_number:
            return transcript.rank
    return None
