import secrets

# URL-safe alphabet, same one nanoid uses
ALPHABET = "useandom-26T198340PX75pxJACKVERYMINDBUSHWOLF_GQZbfghjklqvwyzrict"
ID_LENGTH = 10


def generate_id(size: int = ID_LENGTH) -> str:
    """Short random identifier for primary keys."""
    return "".join(secrets.choice(ALPHABET) for _ in range(size))
