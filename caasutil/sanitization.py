import re


class Sanitization:
    """
    Utility class to sanitize names for different Azure naming rules
    by removing or replacing invalid characters.
    """

    @staticmethod
    def keyvault_object(value: str) -> str:
        """
        Sanitize a string into a Key Vault secret or certificate name:
        - 1-127 characters
        - Only alphanumerics and hyphens
        - No leading, trailing or consecutive hyphens

        Args:
            value (str): Raw input string

        Returns:
            str: Sanitized string

        Raises:
            TypeError: If value is not a string.
            ValueError: If nothing usable remains after sanitizing.
        """
        if not isinstance(value, str):
            raise TypeError("Sanitization.keyvault_object: input must be a string")

        value = re.sub(r"[^a-zA-Z0-9\-]", "-", value)
        value = re.sub(r"-{2,}", "-", value)
        value = value.strip("-")[:127].rstrip("-")

        if not value:
            raise ValueError("Sanitization.keyvault_object: no valid characters in input")
        return value

    @staticmethod
    def dns_label(value: str) -> str:
        """
        Reduce a string to a single DNS label: lowercase alphanumerics and hyphens,
        no leading or trailing hyphen, at most 63 characters.

        Raises:
            ValueError: If nothing usable remains after sanitizing.
        """
        if not isinstance(value, str):
            raise TypeError("Sanitization.dns_label: input must be a string")

        value = re.sub(r"[^a-z0-9\-]", "-", value.lower())
        value = re.sub(r"-{2,}", "-", value)
        value = value.strip("-")[:63].rstrip("-")

        if not value:
            raise ValueError("Sanitization.dns_label: no valid characters in input")
        return value

    @staticmethod
    def username(value: str, max_length: int = 20) -> str:
        """
        Reduce a string to a VM admin username: lowercase alphanumerics,
        starting with a letter, at most `max_length` characters.

        Args:
            value (str): Raw input string
            max_length (int): Upper bound on the result length. Default is 20.

        Returns:
            str: Sanitized string
        """
        if not isinstance(value, str):
            raise TypeError("Sanitization.username: input must be a string")

        value = Sanitization.purge(value)
        value = value.lstrip("0123456789")
        if not value:
            raise ValueError("Sanitization.username: no letters in input")
        return value[:max_length]

    @staticmethod
    def purge(value: str) -> str:
        """
        Purges a string by removing everything except alphanumeric characters (a-z, A-Z, 0-9),
        and converts all characters to lowercase.

        Args:
            value (str): The string to be sanitized.

        Returns:
            str: The sanitized and lowercase string.
        """
        return re.sub(r'[^a-zA-Z0-9]', '', value).lower()


purge = Sanitization.purge
