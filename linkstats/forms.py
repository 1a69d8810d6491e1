"""Forms validating the JSON payloads of the linkstats API.

The views decode request bodies into dictionaries and bind them to these
forms, so input errors are reported before the corpus or the statistics
store is touched.
"""

from __future__ import annotations

from typing import Any, Dict, List

from django import forms

from .engine.index import AnalysisRequest
from .store import PATCH_FIELDS
from .services import get_engine_config


def _locale_choices() -> list[tuple[str, str]]:
    return [(locale, locale) for locale in get_engine_config().locales]


class AnchorListField(forms.Field):
    """Accepts a JSON list of anchors; individual entries are cleaned later."""

    default_error_messages = {
        'required': 'This field is required.',
        'invalid_list': 'Anchors must be provided as a list.',
    }

    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault('required', False)
        super().__init__(**kwargs)

    def clean(self, value: Any) -> List[Any]:
        if value is None:
            raise forms.ValidationError(self.error_messages['required'], code='required')
        if not isinstance(value, (list, tuple)):
            raise forms.ValidationError(self.error_messages['invalid_list'], code='invalid_list')
        return list(value)


class JSONValueField(forms.Field):
    """Passes an already decoded JSON value through untouched.

    Empty objects, empty lists and bare strings are real values here; only
    ``None`` means the caller left the field out.
    """

    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault('required', False)
        super().__init__(**kwargs)

    def clean(self, value: Any) -> Any:
        return value


class CalculateLinksForm(forms.Form):
    """Input for counting existing and potential links of an entity's anchors."""

    entity_type = forms.CharField(max_length=64)
    entity_id = forms.CharField(max_length=64)
    language = forms.ChoiceField(choices=())
    anchors = AnchorListField()
    targetSlug = forms.CharField(required=False, max_length=255)
    includeDetails = forms.BooleanField(required=False)
    persist = forms.BooleanField(required=False)

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.fields['language'].choices = _locale_choices()

    def to_request(self) -> AnalysisRequest:
        data = self.cleaned_data
        return AnalysisRequest(
            entity_type=data['entity_type'],
            entity_id=data['entity_id'],
            language=data['language'],
            anchors=tuple(data['anchors']),
            target_slug=data.get('targetSlug') or None,
            include_details=data.get('includeDetails', False),
        )


class SeoStatsQueryForm(forms.Form):
    """Key of a statistics record to read; the locale may be omitted."""

    entity_type = forms.CharField(max_length=64)
    entity_id = forms.CharField(max_length=64)
    locale = forms.ChoiceField(choices=(), required=False)

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.fields['locale'].choices = _locale_choices()


class SeoStatsWriteForm(SeoStatsQueryForm):
    """Partial write of a statistics record."""

    focus_keyphrase = forms.CharField(required=False, strip=False)
    stats = JSONValueField()
    link_keywords = JSONValueField()
    calculated_at = forms.DateTimeField(required=False)

    def clean_link_keywords(self) -> Any:
        value = self.cleaned_data.get('link_keywords')
        if value is None:
            return value
        if not isinstance(value, dict) or not isinstance(value.get('keywords', []), list):
            raise forms.ValidationError('link_keywords must be an object with a "keywords" list.')
        return value

    def patch(self) -> Dict[str, Any]:
        """Only the fields the caller actually sent, so absent ones are preserved."""

        return {
            name: self.cleaned_data.get(name)
            for name in PATCH_FIELDS
            if name in self.data and self.data[name] is not None
        }
