from dynamic_forms.validation.types import FormSpec


def make_spec(fields, **extra):
    """FormSpec from a list of field dicts plus optional top-level keys (id, sections, wizard)"""
    config = {'id': extra.pop('id', 'test-form'), 'fields': fields}
    config.update(extra)
    return FormSpec.from_dict(config)


def three_page_spec():
    """Wizard whose last page only shows while showLast is True; page two has a required field"""
    return make_spec(
        [
            {'name': 'showLast', 'label': 'Show last page', 'type': 'checkbox', 'sectionId': 's1'},
            {'name': 'b', 'label': 'B', 'sectionId': 's2',
             'validations': [{'type': 'required', 'message': 'B is required'}]},
            {'name': 'c', 'label': 'C', 'sectionId': 's3'},
        ],
        sections=[{'id': 's1', 'title': 'One'}, {'id': 's2', 'title': 'Two'}, {'id': 's3', 'title': 'Three'}],
        wizard={'pages': [
            {'id': 'p1', 'title': 'P1', 'sectionIds': ['s1']},
            {'id': 'p2', 'title': 'P2', 'sectionIds': ['s2']},
            {'id': 'p3', 'title': 'P3', 'sectionIds': ['s3'],
             'condition': {'field': 'showLast', 'operator': 'equals', 'value': True}},
        ]},
    )
