from typing import Iterable

TEST_DIRECTORY = "__tests__"
TEST_SUFFIX = ".test"
DEFAULT_EXTENSIONS = (".ts", ".js", ".tsx", ".jsx")
TEST_FILE_ENDINGS = (".test.ts", ".test.js", ".spec.ts", ".spec.js")


def get_test_file_path(source_file_path: str) -> str:
    """Map ``dir/name.ext`` to ``dir/__tests__/name.test.ext``."""
    slash = source_file_path.rfind("/")
    dir_name = source_file_path[:slash] if slash >= 0 else ""
    base_name = source_file_path[slash + 1 :]

    dot = base_name.rfind(".")
    if dot > 0:
        name, extension = base_name[:dot], base_name[dot:]
    else:
        name, extension = base_name, ""

    test_name = f"{TEST_DIRECTORY}/{name}{TEST_SUFFIX}{extension}"
    return f"{dir_name}/{test_name}" if dir_name else test_name


def is_test_file(file_path: str) -> bool:
    return TEST_DIRECTORY in file_path or file_path.endswith(TEST_FILE_ENDINGS)


def should_process_file(
    file_path: str, extensions: Iterable[str] = DEFAULT_EXTENSIONS
) -> bool:
    """Source files with a supported extension that are not tests themselves."""
    return file_path.endswith(tuple(extensions)) and not is_test_file(file_path)
