from django import forms


class WelcomeEmailForm(forms.Form):
    """JSON body of the admin "send welcome" call."""

    to = forms.EmailField(required=False)
    name = forms.CharField(max_length=128, required=False)
    registrationId = forms.CharField(max_length=64, required=False)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # "from" is a keyword, so it cannot be declared as a class attribute
        self.fields["from"] = forms.CharField(max_length=254, required=False)
