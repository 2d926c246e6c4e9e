"""
User Serializers
"""

from datetime import date

from rest_framework import serializers

from core.repositories.documents import GENDERS

MINIMUM_AGE = 15
MIN_PASSWORD_LENGTH = 8


def age_on(birthday: date, today: date) -> int:
    years = today.year - birthday.year
    if (today.month, today.day) < (birthday.month, birthday.day):
        years -= 1
    return years


class SignupSerializer(serializers.Serializer):
    """Serializer for account registration."""

    username = serializers.RegexField(
        r"^[A-Za-z0-9_]+$",
        min_length=3,
        error_messages={
            "invalid": "Username can only contain letters, numbers, and underscores.",
            "min_length": "Username must be at least 3 characters long.",
        },
    )
    firstName = serializers.CharField(error_messages={"blank": "First name is required."})
    lastName = serializers.CharField(error_messages={"blank": "Last name is required."})
    email = serializers.EmailField(error_messages={"invalid": "Please enter a valid email address."})
    birthday = serializers.DateField(
        input_formats=["%Y-%m-%d"],
        error_messages={"invalid": "Invalid birthday format. Use YYYY-MM-DD."},
    )
    gender = serializers.ChoiceField(
        choices=GENDERS,
        error_messages={"invalid_choice": "Invalid gender selected."},
    )
    password = serializers.CharField(
        write_only=True,
        trim_whitespace=False,
        min_length=MIN_PASSWORD_LENGTH,
        error_messages={"min_length": "Password must be at least 8 characters long."},
    )
    confirmPassword = serializers.CharField(write_only=True, trim_whitespace=False)

    def validate_email(self, value):
        return value.lower()

    def validate_birthday(self, value):
        if age_on(value, self.context.get("today") or date.today()) < MINIMUM_AGE:
            raise serializers.ValidationError(f"You must be at least {MINIMUM_AGE} years old to sign up.")
        return value

    def validate(self, attrs):
        if attrs["password"] != attrs["confirmPassword"]:
            raise serializers.ValidationError({"confirmPassword": "Passwords do not match."})
        return attrs


class LoginSerializer(serializers.Serializer):
    """Serializer for login."""

    identifier = serializers.CharField()
    password = serializers.CharField(write_only=True, trim_whitespace=False)
    rememberMe = serializers.BooleanField(default=False)


class VerifySerializer(serializers.Serializer):
    userId = serializers.CharField()
    code = serializers.CharField()


class PasswordResetRequestSerializer(serializers.Serializer):
    identifier = serializers.CharField()


class PasswordResetSerializer(serializers.Serializer):
    """Serializer for completing a password reset."""

    userId = serializers.CharField()
    code = serializers.CharField()
    newPassword = serializers.CharField(
        write_only=True,
        trim_whitespace=False,
        min_length=MIN_PASSWORD_LENGTH,
        error_messages={"min_length": "New password must be at least 8 characters long."},
    )
    confirmNewPassword = serializers.CharField(write_only=True, trim_whitespace=False)

    def validate(self, attrs):
        if attrs["newPassword"] != attrs["confirmNewPassword"]:
            raise serializers.ValidationError({"confirmNewPassword": "New passwords do not match."})
        return attrs


class ChangePasswordSerializer(serializers.Serializer):
    """Serializer for password change."""

    currentPassword = serializers.CharField(write_only=True, trim_whitespace=False)
    newPassword = serializers.CharField(
        write_only=True,
        trim_whitespace=False,
        min_length=MIN_PASSWORD_LENGTH,
        error_messages={"min_length": "New password must be at least 8 characters long."},
    )
    confirmNewPassword = serializers.CharField(write_only=True, trim_whitespace=False)

    def validate(self, attrs):
        if attrs["newPassword"] != attrs["confirmNewPassword"]:
            raise serializers.ValidationError({"confirmNewPassword": "New passwords do not match."})
        return attrs
