"""
Onboarding: create the device's user and their first, default persona.
"""
import re
from typing import NamedTuple, Optional

from ..errors import (
    InvalidEmailError,
    NameRequiredError,
    NameTooLongError,
    NameTooShortError,
    UserAlreadyExistsError,
)
from ..logging_config import use_case_logger
from ..schemas import Persona, PersonaColor, PersonaIcon, User

MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 50
DEFAULT_PERSONA_NAME = "Personal"
DEFAULT_PERSONA_DESCRIPTION = "Your default persona"

EMAIL_PATTERN = re.compile(r"[A-Z0-9a-z._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,64}")


class OnboardingResult(NamedTuple):
    user: User
    persona: Persona


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def validate_name(name: Optional[str]) -> str:
    """Return the trimmed name or raise the matching onboarding error."""
    trimmed = (name or "").strip()
    if not trimmed:
        raise NameRequiredError()
    if len(trimmed) < MIN_NAME_LENGTH:
        raise NameTooShortError()
    if len(trimmed) > MAX_NAME_LENGTH:
        raise NameTooLongError()
    return trimmed


def validate_email(email: Optional[str]) -> Optional[str]:
    """Blank means no email. Anything else must look like an address."""
    trimmed = _clean(email)
    if trimmed is not None and not EMAIL_PATTERN.fullmatch(trimmed):
        raise InvalidEmailError()
    return trimmed


class CompleteOnboarding:
    def __init__(self, user_repository, persona_repository, settings_repository):
        self.users = user_repository
        self.personas = persona_repository
        self.settings = settings_repository

    async def execute(
        self,
        name: str,
        bio: Optional[str] = None,
        email: Optional[str] = None,
        persona_name: str = DEFAULT_PERSONA_NAME,
        persona_color: PersonaColor = PersonaColor.BLUE,
    ) -> OnboardingResult:
        """
        Validate the input, then write the user and a default persona.

        Both entities are built, and so validated, before anything is written.
        Nothing is written if validation fails or a user already exists. If
        the persona cannot be stored, the new user is deleted again and the
        original error is re-raised.
        """
        name = validate_name(name)
        email = validate_email(email)

        user = User(name=name, bio=_clean(bio), email=email)
        persona = Persona(
            name=persona_name,
            color=persona_color,
            icon=PersonaIcon.PERSON,
            description=DEFAULT_PERSONA_DESCRIPTION,
            is_default=True,
            user_id=user.id,
        )

        if await self.users.has_user():
            use_case_logger.warning("Onboarding refused: user already exists")
            raise UserAlreadyExistsError()

        await self.users.create(user)
        try:
            await self.personas.create(persona)
        except Exception as e:
            use_case_logger.error("Default persona creation failed, removing user", error=e, user_id=str(user.id))
            await self.users.delete(user.id)
            raise

        await self.settings.mark_onboarding_complete()
        user.persona_ids = [persona.id]

        use_case_logger.info("Onboarding completed", user_id=str(user.id), persona_id=str(persona.id))
        return OnboardingResult(user=user, persona=persona)

    async def has_completed_onboarding(self) -> bool:
        return await self.settings.has_completed_onboarding()

    async def reset_onboarding(self) -> None:
        await self.settings.reset_onboarding()
