"""
Exam Paper API - PDF upload to answered questions

POST /process-pdf takes a multipart upload (field ``pdf``) and returns every
question found in the paper with its best matching lecture and an answer.
"""
import logging
from typing import Optional

from fastapi import APIRouter, File, Request, UploadFile, status
from fastapi.responses import JSONResponse

from lecture_qa.api.deps import PipelineDep
from lecture_qa.core.exceptions import DocumentError, UserInputError
from lecture_qa.core.rate_limit import upload_rate_limit
from lecture_qa.models.schemas import PipelineErrorResponse, ProcessPdfResponse, QuestionResultSchema

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Documents"])


def _error(status_code: int, error: str, **fields) -> JSONResponse:
    body = PipelineErrorResponse(error=error, **fields)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
    )


@router.post(
    "/process-pdf",
    response_model=ProcessPdfResponse,
    response_model_by_alias=True,
    responses={400: {"model": PipelineErrorResponse}, 500: {"model": PipelineErrorResponse}},
)
@upload_rate_limit
async def process_pdf(
    request: Request,
    pipeline: PipelineDep,
    pdf: Optional[UploadFile] = File(default=None, description="Exam paper PDF"),
):
    """
    Extract and answer the questions of an uploaded exam paper.

    Errors:
    - 400 No PDF file uploaded / Could not read PDF
    - 400 Could not extract text from PDF (with extractedText)
    - 400 No questions found (with the first 2000 chars of extractedText)
    - 500 Error processing PDF
    """
    if pdf is None:
        return _error(status.HTTP_400_BAD_REQUEST, "No PDF file uploaded")

    try:
        data = await pdf.read()
        logger.info(f"[UPLOAD] {pdf.filename}: {len(data) / 1024 / 1024:.2f} MB")

        result = await pipeline.process(data)
    except DocumentError as e:
        return _error(status.HTTP_400_BAD_REQUEST, "Could not read PDF", details=e.message)
    except UserInputError as e:
        return _error(status.HTTP_400_BAD_REQUEST, e.message, extracted_text=e.extracted_text)
    except Exception as e:
        logger.exception(f"[UPLOAD] Error processing PDF: {e}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Error processing PDF", details=str(e))

    response = ProcessPdfResponse(
        success=True,
        total_questions=result.total_questions,
        matched_questions=result.matched_questions,
        results=[
            QuestionResultSchema(
                question=r.question,
                lecture_name=r.lecture_name,
                score=r.score,
                metadata=r.metadata,
                answer=r.answer,
            )
            for r in result.results
        ],
    )
    return JSONResponse(content=response.model_dump(mode="json", by_alias=True))
