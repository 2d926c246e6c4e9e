"""
Post Serializers
"""

from rest_framework import serializers


class PostCreateSerializer(serializers.Serializer):
    """A post needs a caption, a stored upload, or both."""

    content = serializers.CharField(required=False, allow_blank=True, allow_null=True, default="")
    imageUrl = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)

    def validate(self, attrs):
        if not attrs.get("content") and not attrs.get("imageUrl"):
            raise serializers.ValidationError(
                {"content": "Post must have either text content or an image/video."}
            )
        return attrs


class CommentSerializer(serializers.Serializer):
    text = serializers.CharField(error_messages={
        "blank": "Comment text cannot be empty.",
        "required": "Comment text cannot be empty.",
        "null": "Comment text cannot be empty.",
    })
