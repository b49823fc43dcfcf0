from importlib.metadata import PackageNotFoundError, version

VOLMOUNT_VENDOR = "volmount"
VOLMOUNT_PRODUCT = "volmount"


def version_string():
    try:
        return version("volmount")
    except PackageNotFoundError:
        return '1.0.0'
