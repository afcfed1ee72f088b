"""Profile configuration loading."""

from .loader import list_builtin_profiles, load_builtin_profile, load_profile, profile_from_dict

__all__ = [
    "list_builtin_profiles",
    "load_builtin_profile",
    "load_profile",
    "profile_from_dict",
]
