"""Default user profile and preferences."""

DEFAULT_PROFILE: dict[str, object] = {
    "name": "Le Tan Nguyen Dat",
    "dateOfBirth": "2005-02-10",
    "phoneNumber": "12345",
    "email": "Endy@apcs",
    "address": "Tran Phu, Ho Chi Minh",
}

DEFAULT_PREFERENCES: dict[str, object] = {
    "notifications": True,
    "darkMode": False,
    "language": "en",
    "currency": "USD",
}
