"""Strategy A: direct-context generation."""

from __future__ import annotations

from studylens.interfaces.llm_provider import ILLMProvider
from studylens.models.analysis import AnalysisOptions
from studylens.models.prediction import PredictionResult, PredictionStrategy
from studylens.services.prediction.context_builder import PredictionContext
from studylens.services.prediction.prompts import SYSTEM_PROMPT, build_direct_prompt
from studylens.services.prediction.response_parser import parse_prediction
from studylens.utils.logging import get_logger
from studylens.utils.text_normalizer import estimate_tokens


class DirectPredictionStrategy:
    """One prompt over the assembled context, strictly validated.

    Raises ``LLMError`` when the provider fails and ``PredictionParseError``
    when its output does not match the schema; the engine turns either
    into the next strategy or the fallback.
    """

    def __init__(self, llm: ILLMProvider, temperature: float = 0.3, max_tokens: int = 2048) -> None:
        self._llm = llm
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._logger = get_logger(__name__)

    async def predict(self, context: PredictionContext, options: AnalysisOptions) -> PredictionResult:
        prompt = build_direct_prompt(context.text, options)
        response = await self._llm.complete(
            system_prompt=SYSTEM_PROMPT,
            user_prompt=prompt,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )
        payload = parse_prediction(response, provider_name=self._llm.get_provider_name())

        self._logger.info(
            "direct_prediction_complete",
            subject_id=context.subject_id,
            topics=len(payload.important_topics),
            questions=len(payload.generated_questions),
        )
        return PredictionResult(
            important_topics=payload.important_topics,
            generated_questions=payload.generated_questions[: options.question_count],
            summary=payload.summary if options.include_summary else None,
            strategy=PredictionStrategy.DIRECT,
            tokens_used=estimate_tokens(SYSTEM_PROMPT + prompt + response),
            model=self._llm.model_name,
        )
