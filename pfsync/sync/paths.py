"""Path construction for destination folders and mirror sources."""


def destination_base(remote_name: str, bucket_name: str) -> str:
    """Folder holding one subfolder per source.

    The destination remote name doubles as the "user" path segment.

    Examples:
        >>> destination_base("pfuser", "data")
        'pfuser:data/user/pfuser'
    """
    return f"{remote_name}:{bucket_name}/user/{remote_name}"


def destination_folder(remote_name: str, bucket_name: str, folder: str) -> str:
    """Destination subfolder for a source or an orphan folder.

    Examples:
        >>> destination_folder("pfuser", "data", "gdrive1")
        'pfuser:data/user/pfuser/gdrive1'
    """
    return f"{destination_base(remote_name, bucket_name)}/{folder}"


def source_path(name: str, subfolder: str = "") -> str:
    """Source path of a remote, restricted to ``subfolder`` when given.

    Examples:
        >>> source_path("gdrive1")
        'gdrive1:'
        >>> source_path("gdrive1", "notes")
        'gdrive1:/notes'
        >>> source_path("gdrive1", "/notes")
        'gdrive1:/notes'
    """
    if not subfolder:
        return f"{name}:"
    if subfolder.startswith("/"):
        return f"{name}:{subfolder}"
    return f"{name}:/{subfolder}"
