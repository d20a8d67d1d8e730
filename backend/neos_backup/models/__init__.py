"""Typed documents found in a backup: manifests, records and account data."""

from .manifest import Component, ComponentData, Field, FieldValue, Manifest, Slot
from .records import AssetRef, Record, RecordType, Submission
from .accounts import Contact, ContactStatus, GroupMember, Profile, RsaKey, Session, SessionUser

__all__ = [
    "AssetRef",
    "Component",
    "ComponentData",
    "Contact",
    "ContactStatus",
    "Field",
    "FieldValue",
    "GroupMember",
    "Manifest",
    "Profile",
    "Record",
    "RecordType",
    "RsaKey",
    "Session",
    "SessionUser",
    "Slot",
    "Submission",
]
