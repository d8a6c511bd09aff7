"""
Exception taxonomy for the secret generation controller
"""


class AutoSecretError(Exception):
    """
    Base class for all controller errors
    """


class ProblemListError(AutoSecretError):
    """
    Error carrying every problem found in one go instead of the first one
    """
    HEADING = "Invalid input"

    def __init__(self, problems):
        self.problems = list(problems)
        super(ProblemListError, self).__init__(self.format())

    def format(self):
        return "%s: %s" % (self.HEADING, "; ".join(
            ["%s: %s" % (where, message) for where, message in self.problems]))


class ParseError(ProblemListError):
    """
    Generation annotation could not be parsed, problems are (line number, message) pairs
    """
    HEADING = "Invalid generation annotation"

    def format(self):
        return "%s: %s" % (self.HEADING, "; ".join(
            ["line %d: %s" % (lineno, message) for lineno, message in self.problems]))


class GeneratorError(ProblemListError):
    """
    Generator rejected its parameters, problems are (key or kind, message) pairs
    """
    HEADING = "Generator failed"


class WriteError(AutoSecretError):
    """
    Conditional patch of the resource did not go through
    """


class WriteConflict(WriteError):
    """
    Resource changed since it was read, the whole pipeline must run again
    """


class ConflictRetriesExhausted(WriteError):
    """
    Every attempt within one cycle lost the optimistic concurrency race
    """

    def __init__(self, attempts):
        self.attempts = attempts
        super(ConflictRetriesExhausted, self).__init__(
            "conflict retries exhausted after %d attempts" % attempts)


class StoreUnavailable(AutoSecretError):
    """
    Cluster API could not be reached or answered with an unexpected error
    """


class ResourceGone(AutoSecretError):
    """
    Resource was deleted before or while it was reconciled
    """
