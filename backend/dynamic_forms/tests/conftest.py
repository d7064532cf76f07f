"""
Shared form configs for the dynamic forms tests
"""
import pytest

from dynamic_forms.validation.registry import FormSpecResolver, ValidationRegistries
from .factories import make_spec


@pytest.fixture
def registries():
    return ValidationRegistries()


@pytest.fixture
def email_spec():
    return make_spec([
        {
            'name': 'email',
            'label': 'Email',
            'type': 'email',
            'validations': [
                {'type': 'required', 'message': 'Email is required'},
                {'type': 'email', 'message': 'Invalid email'},
            ],
        },
    ])


@pytest.fixture
def employment_table_spec():
    return make_spec([
        {
            'name': 'history',
            'label': 'History',
            'type': 'table',
            'tableConfig': {
                'rowMode': 'dynamic',
                'columns': [
                    {
                        'name': 'employer',
                        'label': 'Employer',
                        'validations': [{'type': 'required', 'message': 'Employer is required'}],
                    },
                    {
                        'name': 'endDate',
                        'label': 'End date',
                        'validations': [{
                            'type': 'required',
                            'message': 'End date is required',
                            'condition': {'field': 'current', 'operator': 'notEquals', 'value': True},
                        }],
                    },
                    {'name': 'current', 'label': 'Current', 'type': 'checkbox'},
                ],
            },
        },
    ])


@pytest.fixture
def contact_spec():
    return make_spec([
        {
            'name': 'name',
            'label': 'Name',
            'type': 'text',
            'validations': [{'type': 'required', 'message': 'Name is required'}],
        },
        {
            'name': 'email',
            'label': 'Email',
            'type': 'email',
            'validations': [{'type': 'email', 'message': 'Invalid email'}],
        },
        {'name': 'notes', 'label': 'Notes', 'type': 'info', 'content': 'Read me'},
    ], id='contact')


@pytest.fixture
def resolver(contact_spec):
    return FormSpecResolver([contact_spec])


@pytest.fixture
def wizard_spec():
    return make_spec(
        [
            {
                'name': 'firstName',
                'label': 'First name',
                'sectionId': 'personal',
                'validations': [{'type': 'required', 'message': 'First name is required'}],
            },
            {
                'name': 'hasCompany',
                'label': 'Has company',
                'type': 'checkbox',
                'sectionId': 'personal',
            },
            {
                'name': 'companyName',
                'label': 'Company',
                'sectionId': 'company',
                'validations': [{'type': 'required', 'message': 'Company is required'}],
            },
            {
                'name': 'comments',
                'label': 'Comments',
                'type': 'textarea',
                'sectionId': 'review',
            },
        ],
        id='wizard-form',
        sections=[
            {'id': 'personal', 'title': 'Personal'},
            {'id': 'company', 'title': 'Company'},
            {'id': 'review', 'title': 'Review'},
        ],
        wizard={
            'pages': [
                {'id': 'review-page', 'title': 'Review', 'sectionIds': ['review'], 'order': 3},
                {'id': 'personal-page', 'title': 'Personal', 'sectionIds': ['personal'], 'order': 1},
                {
                    'id': 'company-page',
                    'title': 'Company',
                    'sectionIds': ['company'],
                    'order': 2,
                    'condition': {'field': 'hasCompany', 'operator': 'equals', 'value': True},
                },
            ],
        },
    )
