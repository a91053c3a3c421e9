"""Global utilities for the CLI.
"""


def format_number(n: float) -> str:
    """Return a number with suffix k, M, G or nothing. 
    The string is at most 7 chars unless the size exceed 1 T.
    """
    if n < 1000:
        return f"{int(n)} "
    elif n < 1000000:
        return f"{(int(n / 100) / 10):.1f} k"
    elif n < 1000000000:
        return f"{(int(n / 100000) / 10):.1f} M"
    else:
        return f"{(int(n / 100000000) / 10):.1f} G"


def anonymize_email(email: str) -> str:
    """Return a visually anonymized email, keeping first and last characters of the
    user and of the domain name.
    """

    def anonymize_part(part: str) -> str:
        if len(part) <= 2:
            return part
        return f"{part[0]}{'*' * (len(part) - 2)}{part[-1]}"

    user, sep, domain = email.partition("@")
    if not sep:
        return anonymize_part(user)

    domain_name, dot, domain_rest = domain.partition(".")
    return f"{anonymize_part(user)}@{anonymize_part(domain_name)}{dot}{domain_rest}"
