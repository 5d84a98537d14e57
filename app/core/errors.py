from __future__ import annotations


class ResumeServiceError(RuntimeError):
    status_code = 500
    user_message = "Something went wrong. Please try again."

    def __init__(self, message: str, *, code: str = "resume_service_error"):
        super().__init__(message)
        self.code = code

    @property
    def detail(self) -> str:
        return f"{self.user_message} ({self})"


class ValidationError(ResumeServiceError):
    status_code = 400
    user_message = "Please provide more resume content."

    def __init__(self, message: str, *, code: str = "validation_failed"):
        super().__init__(message, code=code)


class NoUsableResumeText(ValidationError):
    def __init__(self, message: str = "No usable resume text found. Please edit your resume first."):
        super().__init__(message, code="no_usable_resume_text")


class ModelResponseError(ResumeServiceError):
    status_code = 502
    user_message = "The model returned an unexpected response. Try again."

    def __init__(self, message: str, *, code: str = "model_response_invalid"):
        super().__init__(message, code=code)


class ProviderError(ResumeServiceError):
    status_code = 503
    user_message = "The language model provider is unavailable."

    def __init__(self, message: str, *, code: str = "provider_unavailable"):
        super().__init__(message, code=code)


class ExtractionFailure(ResumeServiceError):
    status_code = 422
    user_message = "Could not extract readable text from this file."

    def __init__(self, message: str, *, code: str = "extraction_failed"):
        super().__init__(message, code=code)
