"""
Profile Serializers
"""

from rest_framework import serializers

MAX_BIO_LENGTH = 500


class ProfileUpdateSerializer(serializers.Serializer):
    """Partial profile edit; absent fields are left untouched."""

    firstName = serializers.CharField(required=False, error_messages={"blank": "First name cannot be empty."})
    lastName = serializers.CharField(required=False, error_messages={"blank": "Last name cannot be empty."})
    displayName = serializers.CharField(required=False, allow_blank=True)
    bio = serializers.CharField(
        required=False,
        allow_blank=True,
        max_length=MAX_BIO_LENGTH,
        error_messages={"max_length": "Bio cannot exceed 500 characters."},
    )
    profilePicture = serializers.CharField(required=False, allow_null=True)
    removePicture = serializers.BooleanField(required=False, default=False)
