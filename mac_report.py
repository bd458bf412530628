import csv
import io
import json
import os
from datetime import datetime

from jinja2 import Environment, FileSystemLoader, select_autoescape

TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates")
TEMPLATE_FILE = "shadow_macs.html"

FIELDS = ("host_name", "parent", "device_name", "shadow_mac")
HEADERS = ("Host", "Parent", "Adapter", "Shadow MAC")
FORMATS = ("table", "csv", "json", "html")

_env = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(["html"]),
)


def format_table(records):
    rows = [HEADERS] + [tuple(getattr(r, f) for f in FIELDS) for r in records]
    widths = [max(len(row[i]) for row in rows) for i in range(len(FIELDS))]
    lines = []
    for n, row in enumerate(rows):
        lines.append("  ".join(value.ljust(width) for value, width in zip(row, widths)).rstrip())
        if n == 0:
            lines.append("  ".join("-" * width for width in widths))
    return "\n".join(lines) + "\n"


def format_csv(records):
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=FIELDS, lineterminator="\n")
    writer.writeheader()
    for r in records:
        writer.writerow(r.as_dict())
    return buf.getvalue()


def format_json(records):
    return json.dumps([r.as_dict() for r in records], indent=2) + "\n"


def error_dicts(errors):
    """(host name, exception) pairs as {"host_name", "error"} dicts."""
    return [{"host_name": name, "error": str(e)} for name, e in errors or []]


def render_html(records, errors=None, generated=None):
    """
    Render the HTML report. errors is a list of (host name, exception) pairs
    for hosts that were skipped.
    """
    if generated is None:
        generated = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    template = _env.get_template(TEMPLATE_FILE)
    return template.render(
        records=records,
        errors=error_dicts(errors),
        generated=generated,
    )


_FORMATTERS = {
    "table": format_table,
    "csv": format_csv,
    "json": format_json,
    "html": render_html,
}


def render(records, fmt="table", errors=None):
    try:
        formatter = _FORMATTERS[fmt]
    except KeyError:
        raise ValueError(f"Unknown report format {fmt!r}, expected one of {', '.join(FORMATS)}") from None
    if fmt == "html":
        return formatter(records, errors)
    return formatter(records)


def write_report(records, fmt, path, errors=None):
    with open(path, "w", encoding="utf-8") as f:
        f.write(render(records, fmt, errors))
    return os.path.abspath(path)
