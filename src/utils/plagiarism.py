"""Word-set similarity checks between submissions.

Similarity is the Jaccard index of the two texts' lower-cased word sets.
A submission's overall score is its highest similarity to any other
submission for the same assignment.
"""

import re
from typing import Iterable, List, NamedTuple, Optional, Set

from pydantic import BaseModel, Field

from config import PLAGIARISM_MATCH_THRESHOLD
from schemas.submission import PlagiarismMatch

_WORD_RE = re.compile(r"\w+")

# Shared words reported per match
SHARED_TERMS_SAMPLE = 10


class ComparisonText(NamedTuple):
    submission_id: str
    student_name: Optional[str]
    text: str


class PlagiarismResult(BaseModel):
    similarity: float = 0.0
    matches: List[PlagiarismMatch] = Field(default_factory=list)


def tokenize(text: str) -> Set[str]:
    return set(_WORD_RE.findall((text or "").lower()))


def jaccard_similarity(text_a: str, text_b: str) -> float:
    """Return |A ∩ B| / |A ∪ B| for the word sets of two texts.

    Two texts with no words at all have similarity 0.0.
    """
    return _jaccard(tokenize(text_a), tokenize(text_b))


def _jaccard(words_a: Set[str], words_b: Set[str]) -> float:
    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)


def check_plagiarism(
    text: str,
    others: Iterable[ComparisonText],
    threshold: float = PLAGIARISM_MATCH_THRESHOLD,
) -> PlagiarismResult:
    """Compare ``text`` against every other submission text.

    Args:
        text: Text of the submission being checked.
        others: Texts of the other submissions for the same assignment.
        threshold: Minimum similarity for a comparison to be listed as a match.

    Returns:
        The highest similarity found, and the matches at or above the
        threshold, most similar first.
    """
    words = tokenize(text)
    best = 0.0
    matches = []
    for other in others:
        other_words = tokenize(other.text)
        similarity = _jaccard(words, other_words)
        best = max(best, similarity)
        if similarity >= threshold and similarity > 0:
            shared = sorted(words & other_words)[:SHARED_TERMS_SAMPLE]
            matches.append(
                PlagiarismMatch(
                    matched_with=other.submission_id,
                    student_name=other.student_name,
                    similarity=round(similarity, 4),
                    shared_terms=shared,
                )
            )
    matches.sort(key=lambda m: m.similarity, reverse=True)
    return PlagiarismResult(similarity=round(best, 4), matches=matches)


def risk_level(similarity: float) -> str:
    if similarity > 0.7:
        return "HIGH"
    if similarity > 0.4:
        return "MEDIUM"
    if similarity > 0.2:
        return "LOW"
    return "CLEAR"


def generate_report(result: PlagiarismResult) -> str:
    """Render a plain-text summary of a plagiarism check."""
    lines = [
        "Plagiarism Check Report",
        "=======================",
        f"Overall similarity: {result.similarity * 100:.1f}%",
        f"Risk level: {risk_level(result.similarity)}",
        f"Matches found: {len(result.matches)}",
    ]
    for index, match in enumerate(result.matches, start=1):
        who = match.student_name or match.matched_with
        lines.append(f"{index}. {who}: {match.similarity * 100:.1f}% similar")
        if match.shared_terms:
            lines.append(f"   Shared terms: {', '.join(match.shared_terms)}")
    if not result.matches:
        lines.append("No significant similarity with other submissions.")
    return "\n".join(lines)
