"""
Base Service
=============

Foundation for all service classes. Provides a standardised logger and
access to the persistence facade.
"""

import logging
from typing import Optional

from core.exceptions import ValidationError
from core.repositories import BaseRepository, get_repository


class BaseService:
    """
    All service classes inherit from this.

    Subclass example::

        class PostService(BaseService):
            def get_post(self, post_id):
                post = self.repository.get_post(post_id)
                ...

    Features:
        - ``cls.logger``: pre-configured logger using the subclass module name
        - ``self.repository``: the injected repository, or the configured one
        - ``cls.validate()``: DRF serializer validation raising ``ValidationError``
    """

    logger: logging.Logger = logging.getLogger(__name__)

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        # Each subclass gets its own logger named after its module
        cls.logger = logging.getLogger(cls.__module__)

    def __init__(self, repository: Optional[BaseRepository] = None):
        self.repository = repository or get_repository()

    def now(self):
        return self.repository.now()

    @staticmethod
    def validate(serializer_class, data: dict, **kwargs) -> dict:
        """
        Run a DRF serializer over ``data`` and return its validated data.

        Raises:
            ValidationError: carrying the first message and every field error
        """
        serializer = serializer_class(data=data, **kwargs)
        if serializer.is_valid():
            return serializer.validated_data

        errors = {field: [str(message) for message in messages]
                  for field, messages in serializer.errors.items()}
        field, messages = next(iter(errors.items()))
        raise ValidationError(messages[0], field=field, errors=errors)
