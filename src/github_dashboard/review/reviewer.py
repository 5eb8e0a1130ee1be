import os
from logging import Logger

from fastmcp.utilities.logging import get_logger
from google.genai import Client as GoogleGenaiClient
from google.genai.types import Candidate, GenerateContentConfig, GenerateContentResponse, Part, UserContent

from github_dashboard.review.prompts import CODE_REVIEW_SYSTEM_PROMPT, code_review_user_prompt

DEFAULT_GOOGLE_MODEL = "gemini-2.5-flash"

DEFAULT_MAX_OUTPUT_TOKENS = 4000
DEFAULT_TEMPERATURE = 0.2

logger = get_logger(__name__)


class CodeReviewError(Exception):
    """The language model did not produce a review."""

    def __init__(self, message: str):
        super().__init__(f"Failed to review code snippet: {message}")


class CodeReviewer:
    """Reviews code snippets with a Google Gemini model."""

    def __init__(
        self,
        default_model: str = DEFAULT_GOOGLE_MODEL,
        client: GoogleGenaiClient | None = None,
        max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
        logger: Logger | None = None,
    ):
        self.client: GoogleGenaiClient = client or GoogleGenaiClient()
        self.default_model: str = default_model
        self.max_output_tokens: int = max_output_tokens
        self.temperature: float = temperature
        self.logger: Logger = logger or get_logger(name=__name__)

    async def review(self, code_snippet: str) -> str:
        """Review a code snippet and return the review as markdown."""

        if not code_snippet.strip():
            msg = "The code snippet is empty."
            raise CodeReviewError(msg)

        self.logger.info(f"Reviewing a code snippet of {len(code_snippet)} characters with {self.default_model}")

        response: GenerateContentResponse = await self.client.aio.models.generate_content(
            model=self.default_model,
            contents=[UserContent(parts=[Part(text=code_review_user_prompt(code_snippet))])],
            config=GenerateContentConfig(
                system_instruction=CODE_REVIEW_SYSTEM_PROMPT,
                temperature=self.temperature,
                max_output_tokens=self.max_output_tokens,
            ),
        )

        if not (text := response.text):
            candidate = get_candidate_from_response(response)

            msg = f"No content in response from completion: {candidate.finish_reason}"
            raise CodeReviewError(msg)

        return text


def get_candidate_from_response(response: GenerateContentResponse) -> Candidate:
    if response.candidates and response.candidates[0]:
        return response.candidates[0]

    msg = "No candidate in response from completion."
    raise CodeReviewError(msg)


def get_code_reviewer() -> CodeReviewer | None:
    if os.getenv("GOOGLE_API_KEY"):
        return CodeReviewer(default_model=os.getenv("GOOGLE_MODEL") or DEFAULT_GOOGLE_MODEL)

    logger.warning(msg="No code reviewer configured, code review requests will fail. Set GOOGLE_API_KEY to enable code reviews.")

    return None
