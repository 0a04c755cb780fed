# template-compositor/backend/utils/pipeline.py

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

import structlog

from .codec import decode_image, encode_png, probe_dimensions
from .compose_layers import compose
from .errors import CompositeError, DecodeError, EncodeError
from .normalize_body import NormalizationPolicy
from .payload import clean_payloads, decode_cleaned


log = structlog.get_logger()


class PipelineState(str, Enum):
    VALIDATING = "validating"
    DECODING = "decoding"
    NORMALIZING = "normalizing"
    COMPOSITING = "compositing"
    ENCODING = "encoding"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class CompositeResult:
    state: PipelineState
    image: Optional[str] = None  # base64 PNG
    error: Optional[CompositeError] = None
    history: Tuple[PipelineState, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return self.state is PipelineState.DONE


class CompositePipeline:
    """
    Runs one composite request end to end:

        validating -> decoding -> normalizing -> compositing -> encoding -> done

    Any failure jumps straight to `failed` with a classified CompositeError.
    Holds no per-request state, so one instance serves every worker thread.
    """

    def __init__(self, policy: NormalizationPolicy):
        self.policy = policy

    def run(
        self,
        ai_image: Optional[str],
        header_template: Optional[str],
        footer_template: Optional[str],
        request_id: Optional[str] = None,
    ) -> CompositeResult:
        history = []
        state = PipelineState.VALIDATING
        role = "AI image"  # image being decoded, for errors raised while decoding

        def advance(next_state: PipelineState) -> PipelineState:
            history.append(next_state)
            return next_state

        advance(state)
        try:
            cleaned = clean_payloads(ai_image, header_template, footer_template)
            log.info(
                "payloads_cleaned",
                request_id=request_id,
                ai_length=len(cleaned["aiImage"]),
                header_length=len(cleaned["headerTemplate"]),
                footer_length=len(cleaned["footerTemplate"]),
            )
            buffers = decode_cleaned(cleaned)

            state = advance(PipelineState.DECODING)
            ai_w, ai_h = probe_dimensions(buffers["aiImage"], "AI image")
            log.info("ai_image_dimensions", request_id=request_id, width=ai_w, height=ai_h)
            ai_img = decode_image(buffers["aiImage"], "AI image")
            role = "header"
            header_img = decode_image(buffers["headerTemplate"], role)
            role = "footer"
            footer_img = decode_image(buffers["footerTemplate"], role)

            state = advance(PipelineState.NORMALIZING)
            body_img = self.policy.normalize(ai_img)
            log.info(
                "ai_image_normalized",
                request_id=request_id,
                policy=self.policy.name,
                size=body_img.size,
            )

            state = advance(PipelineState.COMPOSITING)
            canvas = compose(header_img, body_img, footer_img)

            state = advance(PipelineState.ENCODING)
            png_bytes = encode_png(canvas)
        except CompositeError as e:
            return self._fail(state, e, history, request_id)
        except Exception as e:
            return self._fail(state, _classify(state, e, role), history, request_id)

        encoded = base64.b64encode(png_bytes).decode("utf-8")
        advance(PipelineState.DONE)
        log.info("composite_created", request_id=request_id, output_size=len(encoded))
        return CompositeResult(
            state=PipelineState.DONE,
            image=encoded,
            history=tuple(history),
        )

    def _fail(self, state, error, history, request_id) -> CompositeResult:
        history.append(PipelineState.FAILED)
        log.error(
            "composite_failed",
            request_id=request_id,
            state=state.value,
            kind=error.kind,
            err=error.message,
        )
        return CompositeResult(
            state=PipelineState.FAILED,
            error=error,
            history=tuple(history),
        )


def _classify(state: PipelineState, exc: Exception, role: str) -> CompositeError:
    if state is PipelineState.DECODING:
        return DecodeError(role, str(exc))
    if state is PipelineState.ENCODING:
        return EncodeError(str(exc))
    return CompositeError(f"{state.value} failed: {exc}")
