"""Form helpers shared by the blueprints."""

from flask_wtf import FlaskForm

from .errors import ValidationError


def validate_or_raise(form: FlaskForm) -> FlaskForm:
    """Validate a submitted form, raising the first field error."""
    if not form.validate_on_submit():
        for errors in form.errors.values():
            if errors:
                raise ValidationError(errors[0])
        raise ValidationError()
    return form
