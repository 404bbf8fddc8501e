import re
import json
import logging
from typing import List, Dict, Any, Optional

from openai import OpenAI

from ..models import Segment

logger = logging.getLogger("transcript_studio")

DEFAULT_INSTRUCTION = "fix punctuation and recognition errors"

_FENCE_RE = re.compile(r"```(?:json)?")


def build_refine_prompt(segments: List[Segment], instruction: Optional[str]) -> str:
    """Prompt asking the model to rewrite segments while keeping timecodes"""
    payload = json.dumps([s.to_dict() for s in segments], ensure_ascii=False)
    return (
        "Improve this transcript text. Keep the meaning and the timecodes. "
        "Return a JSON array of objects {start,end,text}. "
        f"Instruction: {instruction or DEFAULT_INSTRUCTION}. "
        f"Source data: {payload}"
    )


def parse_refined_segments(content: str) -> List[Segment]:
    """
    Parse the model reply into segments.

    Only Markdown code fences are stripped; a reply that is not a JSON array
    of objects raises (ValueError, TypeError or AttributeError) unchanged.
    """
    parsed = json.loads(_FENCE_RE.sub("", content).strip())
    if not isinstance(parsed, list):
        raise ValueError(f"Expected a JSON array of segments, got {type(parsed).__name__}")
    return [Segment.from_dict(item) for item in parsed]


class TranscriptRefiner:
    """LLM rewrite of transcript segments"""

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", client: Optional[OpenAI] = None):
        self.model = model
        self.client = client or OpenAI(api_key=api_key)

    def refine(self, segments: List[Segment], instruction: Optional[str] = None) -> List[Segment]:
        logger.info(f"Refining {len(segments)} segments with {self.model}")

        completion = self.client.chat.completions.create(
            model=self.model,
            temperature=0.2,
            messages=[{"role": "user", "content": build_refine_prompt(segments, instruction)}]
        )

        content = "[]"
        if completion.choices and completion.choices[0].message.content:
            content = completion.choices[0].message.content

        return parse_refined_segments(content)
