import secrets
import string
from typing import Dict

LOWERCASE = string.ascii_lowercase
UPPERCASE = string.ascii_uppercase
DIGITS = string.digits
SYMBOLS = "!#$%&*+-=?@^_"

# Class order matters: runs are drawn in this order, then shuffled.
DEFAULT_POLICY: Dict[str, int] = {
    "lowercase": 10,
    "uppercase": 10,
    "digits": 10,
    "symbols": 2,
}

ALPHABETS: Dict[str, str] = {
    "lowercase": LOWERCASE,
    "uppercase": UPPERCASE,
    "digits": DIGITS,
    "symbols": SYMBOLS,
}


class Passwords:
    """
    Generates admin passwords with an exact per-class character composition.
    """

    @staticmethod
    def generate_password(policy: Dict[str, int] | None = None) -> str:
        """
        Generates a password holding exactly `policy[cls]` characters of each class.

        Each class run is drawn independently and uniformly from its alphabet with the
        `secrets` CSPRNG, the runs are concatenated in class order, and the result is
        shuffled so class membership cannot be inferred from position.

        Args:
            policy (dict): Class name -> count. Default is 10 lowercase, 10 uppercase,
                10 digits, 2 symbols (32 characters).

        Returns:
            str: The generated password.

        Raises:
            ValueError: Unknown class, negative count, or zero total length.
        """
        policy = DEFAULT_POLICY if policy is None else policy

        unknown = set(policy) - set(ALPHABETS)
        if unknown:
            raise ValueError(f"Unknown character classes: {sorted(unknown)}")
        if any(count < 0 for count in policy.values()):
            raise ValueError("Character class counts must be non-negative.")
        if sum(policy.values()) <= 0:
            raise ValueError("Password length must be positive.")

        chars = []
        for cls in ALPHABETS:
            alphabet = ALPHABETS[cls]
            chars.extend(secrets.choice(alphabet) for _ in range(policy.get(cls, 0)))

        secrets.SystemRandom().shuffle(chars)
        return "".join(chars)

    @staticmethod
    def composition(password: str) -> Dict[str, int]:
        """
        Count characters of each class in `password`. Characters outside every
        alphabet are counted under "other".
        """
        counts = {cls: 0 for cls in ALPHABETS}
        counts["other"] = 0
        for c in password:
            for cls, alphabet in ALPHABETS.items():
                if c in alphabet:
                    counts[cls] += 1
                    break
            else:
                counts["other"] += 1
        return counts

    @staticmethod
    def validate_password(password: str, policy: Dict[str, int] | None = None) -> bool:
        """
        True if `password` has at least `policy[cls]` characters of every class.
        """
        policy = DEFAULT_POLICY if policy is None else policy
        counts = Passwords.composition(password)
        return all(counts[cls] >= n for cls, n in policy.items())


generate_password = Passwords.generate_password
