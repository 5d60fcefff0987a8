from .models import BuildReport

KB = 1024
MB = 1024 * KB
GB = 1024 * MB


def format_size(num_bytes: int) -> str:
    if num_bytes >= GB:
        return f"{num_bytes / GB:.2f} GB"
    if num_bytes >= MB:
        return f"{num_bytes / MB:.2f} MB"
    if num_bytes >= KB:
        return f"{num_bytes / KB:.2f} KB"
    return f"{num_bytes} B"


def format_duration(seconds: float) -> str:
    if seconds < 1.0:
        return f"{seconds * 1000:.0f}ms"
    if seconds < 60.0:
        return f"{seconds:.2f}s"
    mins = int(seconds // 60)
    return f"{mins}m {seconds - mins * 60:.2f}s"


def format_report(report: BuildReport) -> str:
    """Human readable summary printed after a build."""
    lines = [
        "Build report:",
        f"  Items processed: {report.items_processed}",
        f"  Items skipped (up to date): {report.items_skipped}",
        f"  Total media size: {format_size(report.total_media_size)}",
        f"  Total thumbs size: {format_size(report.total_thumbs_size)}",
        f"  Processing time: {format_duration(report.processing_time)}",
    ]
    if report.catalog is not None:
        lines.append(f"  Media catalog: {report.catalog}")
    return "\n".join(lines)
