from .onboarding import CompleteOnboarding, OnboardingResult

__all__ = ["CompleteOnboarding", "OnboardingResult"]
