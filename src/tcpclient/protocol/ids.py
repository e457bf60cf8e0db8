from enum import Enum


class Action(Enum):
    # Request action words, sent literally at the start of a request frame
    UPPERCASE = "uppercase"
    LOWERCASE = "lowercase"
    REVERSE   = "reverse"
    SHUFFLE   = "shuffle"
    RANDOM    = "random"

    @classmethod
    def parse(cls, word: str) -> "Action | None":
        """Return the action for ``word`` or None if it is not a known action."""
        try:
            return cls(word)
        except ValueError:
            return None

    def __str__(self):
        return self.value
