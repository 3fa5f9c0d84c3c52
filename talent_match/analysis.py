from __future__ import annotations

"""Fixed-template summaries attached to every talent matching response."""

NO_MATCHES_ANALYSIS = "No candidates found with the required skills and specified criteria."

NO_FILTER_MATCHES_ANALYSIS = (
    "Found candidates with required skills, but none match the additional filter criteria."
)


def build_analysis(total: int, relevant: int) -> str:
    """
    ``total`` is the number of ranked candidates, ``relevant`` how many of
    them scored above the relevance threshold.
    """
    analysis = f"Found {total} candidates with the required skills and matching your criteria.\n"
    if total > 0:
        analysis += f"{relevant} candidates show strong relevance to the job description.\n"
        if relevant > 0:
            analysis += "Top candidates are ranked based on their match with your job description."
    return analysis
