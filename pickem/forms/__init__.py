from flask import request
from wtforms import Field, IntegerField

from pickem.errors import BadRequest


class JSONIntegerField(IntegerField):
    """IntegerField that treats JSON null as a missing value"""

    def process_formdata(self, valuelist):
        self.raw_data = [value for value in valuelist if value is not None]
        super().process_formdata(self.raw_data)


class IntegerListField(Field):
    """A JSON array of integers"""

    def process_formdata(self, valuelist):
        try:
            self.data = [int(value) for value in valuelist]
        except (TypeError, ValueError):
            self.data = []
            raise ValueError("Not a list of integers.")

    def _value(self):
        return ",".join(str(v) for v in self.data or [])


class MappingField(Field):
    """A JSON object passed through as a dict"""

    def process_formdata(self, valuelist):
        if not valuelist:
            return
        if not isinstance(valuelist[0], dict):
            self.data = {}
            raise ValueError("Not an object.")
        self.data = valuelist[0]


def parse_body(form_cls):
    """Validate a JSON request body, raising BadRequest with field errors"""
    form = form_cls()
    if not form.validate():
        raise BadRequest("invalid request body", details=form.errors)
    return form


def parse_args(form_cls):
    """Validate query-string arguments"""
    form = form_cls(request.args)
    if not form.validate():
        raise BadRequest("invalid query parameters", details=form.errors)
    return form
