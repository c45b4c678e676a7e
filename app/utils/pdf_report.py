import csv
import io
import logging
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import ClientError
from fpdf import FPDF
from fpdf.enums import XPos, YPos

from app.core.config import settings

logger = logging.getLogger(__name__)

# Initialize S3 client using default AWS credential chain
# (environment variables, AWS credentials file, or IAM role)
s3 = boto3.client("s3", region_name=settings.S3_REGION)

CSV_FIELDS = ["date", "type", "description", "category", "amount", "observation"]

NEXT_LINE = {"new_x": XPos.LMARGIN, "new_y": YPos.NEXT}


def _latin1(text: str) -> str:
    # Core PDF fonts only cover latin-1; emoji and other symbols become '?'
    return str(text).encode("latin-1", "replace").decode("latin-1")


def _s3_url(key: str) -> str:
    return f"https://{settings.S3_BUCKET_NAME}.s3.{settings.S3_REGION}.amazonaws.com/{key}"


def render_report_pdf(report: Dict[str, Any]) -> bytes:
    data = report["data"]
    financial = data["financial"]
    period = report["period"]

    pdf = FPDF()
    pdf.add_page()
    pdf.set_font("Helvetica", "B", 16)
    pdf.cell(0, 10, _latin1(f"{report['type'].replace('_', ' ').title()} Report"), **NEXT_LINE)

    pdf.set_font("Helvetica", "", 11)
    pdf.cell(0, 8, f"Period: {period['start']} to {period['end']} ({period['days']} days)", **NEXT_LINE)
    pdf.cell(0, 8, f"Income: {financial['income']:.2f}", **NEXT_LINE)
    pdf.cell(0, 8, f"Expenses: {financial['expenses']:.2f}", **NEXT_LINE)
    pdf.cell(0, 8, f"Balance: {financial['balance']:.2f}", **NEXT_LINE)
    pdf.cell(0, 8, f"Net worth: {data['patrimony']['net_worth']:.2f}", **NEXT_LINE)
    pdf.ln(4)

    pdf.set_font("Helvetica", "B", 12)
    pdf.cell(0, 8, "Top categories:", **NEXT_LINE)
    pdf.set_font("Helvetica", "", 11)
    if data["categories"]:
        for cat in data["categories"]:
            line = f"- {cat['name']}: {cat['amount']:.2f} ({cat['percentage']}%, {cat['count']} transactions)"
            pdf.cell(0, 8, _latin1(line), **NEXT_LINE)
    else:
        pdf.cell(0, 8, "None", **NEXT_LINE)
    pdf.ln(4)

    for line in report.get("content", "").splitlines():
        stripped = line.strip()
        if not stripped:
            pdf.ln(3)
            continue
        if stripped.startswith("#"):
            pdf.set_font("Helvetica", "B", 12)
            pdf.multi_cell(0, 7, _latin1(stripped.lstrip("#").strip()), **NEXT_LINE)
            pdf.set_font("Helvetica", "", 11)
        else:
            pdf.multi_cell(0, 6, _latin1(stripped.replace("**", "")), **NEXT_LINE)

    return bytes(pdf.output())


def transactions_csv(transactions: List[Dict[str, Any]]) -> str:
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=CSV_FIELDS, extrasaction="ignore")
    writer.writeheader()
    for tx in transactions:
        writer.writerow({field: "" if tx.get(field) is None else tx[field] for field in CSV_FIELDS})
    return output.getvalue()


def _upload(buffer: io.BytesIO, key: str, content_type: str) -> Optional[str]:
    try:
        s3.upload_fileobj(buffer, settings.S3_BUCKET_NAME, key, ExtraArgs={"ContentType": content_type})
        return _s3_url(key)
    except ClientError as e:
        logger.error(f"Failed to upload {key}: {e}")
        return None


def generate_and_upload_pdf(user_id: str, report: Dict[str, Any]) -> Optional[str]:
    buffer = io.BytesIO(render_report_pdf(report))
    return _upload(buffer, f"reports/{user_id}/{report['id']}.pdf", "application/pdf")


def generate_and_upload_csv(user_id: str, transactions: List[Dict[str, Any]], report_id: str) -> Optional[str]:
    buffer = io.BytesIO(transactions_csv(transactions).encode())
    return _upload(buffer, f"reports/{user_id}/{report_id}.csv", "text/csv")
