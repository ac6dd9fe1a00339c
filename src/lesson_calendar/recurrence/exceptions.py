#
# For licensing see accompanying LICENSE file.
# Copyright © 2025 Apple Inc. All Rights Reserved.
#
class InvalidRule(Exception):
    """A recurrence rule string could not be parsed."""


class InvalidOptions(ValueError):
    """Recurrence options violate an invariant and cannot be encoded."""


class OccurrenceNotFound(Exception):
    """The instant acted on is not an occurrence of the series rule."""


class SeriesMutationError(Exception):
    """Applying a split plan to the lesson store failed. Nothing was committed."""


class MutationInProgress(SeriesMutationError):
    pass


class InvalidTransition(Exception):
    pass
