class NoApplicableGradesError(ValueError):
    """The entity serves neither NAEP grade 4 nor grade 8; nothing to fetch."""


class AssessmentFetchError(RuntimeError):
    """Every cell of a required jurisdiction sweep failed."""
