from flask import request
from werkzeug.datastructures import MultiDict

from cheapbite.errors import ValidationError


def json_body() -> dict:
    return request.get_json(silent=True) or {}


def bind_form(form_cls):
    """Build and validate a FlaskForm from a JSON or form-encoded body.

    JSON nulls, lists and objects are left out of the form data; callers read
    those straight from json_body().  Raises ValidationError with the
    field-level errors when the form does not validate.
    """
    if request.is_json:
        flat = {}
        for key, value in json_body().items():
            if value is None or isinstance(value, (dict, list)):
                continue
            flat[key] = value if isinstance(value, bool) else str(value)
        form = form_cls(formdata=MultiDict(flat))
    else:
        form = form_cls()
    if not form.validate():
        raise ValidationError("Invalid input", fields=form.errors)
    return form
