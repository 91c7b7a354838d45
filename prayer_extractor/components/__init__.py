from .api_key_input import ApiKeyInputComponent
from .image_uploader import ImageUploaderComponent
from .input_method import InputMethodComponent
from .json_input import JsonInputComponent
from .prayer_table import PrayerTableComponent
from .status import ErrorComponent, LoaderComponent

__all__ = [
    "ApiKeyInputComponent",
    "ErrorComponent",
    "ImageUploaderComponent",
    "InputMethodComponent",
    "JsonInputComponent",
    "LoaderComponent",
    "PrayerTableComponent",
]
