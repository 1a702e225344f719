import os
import re
import sys
from datetime import date, datetime
from pathlib import Path

import pytest

SCRIPT_DIR = Path(__file__).resolve().parent.parent / "python"
if str(SCRIPT_DIR) not in sys.path:
    sys.path.append(str(SCRIPT_DIR))

from datefile import (
    InvalidInput,
    compose_stamped_name,
    extract_stamp,
    format_date,
    format_time,
    select_compression,
    split_filename,
)

MARCH_5 = datetime(2024, 3, 5, 14, 7, 9)


@pytest.mark.parametrize(
    "name",
    ["report.txt", "archive.tar.gz", "README", "notes.", "a.b.c.d", "dir/photo.jpeg", "dir/sub/"],
)
def test_split_filename_follows_final_dot(name: str) -> None:
    extension, base_name = split_filename(name)
    segment = os.path.basename(name.rstrip("/"))

    assert base_name + extension == segment
    assert extension == os.path.splitext(segment)[1]


def test_split_filename_dotfile_is_all_extension() -> None:
    assert split_filename(".gitignore") == (".gitignore", "")
    assert split_filename("config/.env.local") == (".env.local", "")


def test_split_filename_uses_last_segment_only() -> None:
    assert split_filename("some.dir/report") == ("", "report")


def test_format_date_pads_every_field() -> None:
    assert format_date(date(7, 1, 2)) == "0007-01-02"
    assert format_date(MARCH_5) == "2024-03-05"


def test_format_time_pads_every_field() -> None:
    assert format_time(datetime(2024, 1, 1, 3, 4, 5)) == "03.04.05"
    assert format_time(MARCH_5) == "14.07.09"


def test_compose_prefix_mode() -> None:
    assert compose_stamped_name(MARCH_5, "report", ".txt", False, False) == "2024-03-05_report.txt"


def test_compose_suffix_mode() -> None:
    assert compose_stamped_name(MARCH_5, "report", ".txt", True, False) == "report_2024-03-05.txt"


def test_compose_with_time_and_no_base_name() -> None:
    assert compose_stamped_name(MARCH_5, "", ".tar", False, True) == "2024-03-05_14.07.09.tar"


def test_compose_keeps_extension_verbatim() -> None:
    assert compose_stamped_name(MARCH_5, "", ".gitignore", True, False) == "2024-03-05.gitignore"
    assert compose_stamped_name(MARCH_5, "Makefile", "", True, True) == "Makefile_2024-03-05_14.07.09"


@pytest.mark.parametrize("suffix_mode", [False, True])
@pytest.mark.parametrize("include_time", [False, True])
def test_extract_recovers_composed_name(suffix_mode: bool, include_time: bool) -> None:
    stamped = compose_stamped_name(MARCH_5, "report", ".txt", suffix_mode, include_time)
    assert extract_stamp(stamped) == ("report.txt", True)


def test_extract_without_stamp_returns_name_unchanged() -> None:
    assert extract_stamp("plainfile.txt") == ("plainfile.txt", False)


def test_extract_only_removes_first_stamp() -> None:
    assert extract_stamp("2024-03-05_diff_2023-01-01.txt") == ("diff_2023-01-01.txt", True)


def test_extract_is_lexical() -> None:
    assert extract_stamp("9999-99-99_x.log") == ("x.log", True)


def test_extract_is_repeatable() -> None:
    first = extract_stamp("2024-03-05_report.txt")
    second = extract_stamp("2024-03-05_report.txt")
    assert first == second == ("report.txt", True)


def test_extract_accepts_other_patterns() -> None:
    compact = re.compile(r"_?\d{8}_?")
    assert extract_stamp("20240305_report.txt", compact) == ("report.txt", True)
    assert extract_stamp("2024-03-05_report.txt", compact) == ("2024-03-05_report.txt", False)


def test_select_compression_defaults_to_none() -> None:
    assert select_compression() == "none"


def test_select_compression_single_flag() -> None:
    assert select_compression(xz=True) == "xz"
    assert select_compression(zstd=True) == "zstd"


def test_select_compression_rejects_conflicting_flags() -> None:
    with pytest.raises(InvalidInput, match="gzip, bzip2"):
        select_compression(gzip=True, bzip2=True)
