# patient_intake/constants.py
GENDER_OPTIONS = ["male", "female", "other"]

IDENTIFICATION_TYPES = [
    "Birth Certificate",
    "Driver's License",
    "Medical Insurance Card/Policy",
    "Military ID Card",
    "National Identity Card",
    "Passport",
    "Resident Alien Card (Green Card)",
    "Social Security Card",
    "State ID Card",
    "Student ID Card",
    "Voter ID Card",
]

DOCTORS = [
    {"name": "John Green", "image": "/assets/images/dr-green.png"},
    {"name": "Leila Cameron", "image": "/assets/images/dr-cameron.png"},
    {"name": "David Livingston", "image": "/assets/images/dr-livingston.png"},
    {"name": "Evan Peter", "image": "/assets/images/dr-peter.png"},
    {"name": "Jane Powell", "image": "/assets/images/dr-powell.png"},
    {"name": "Alex Ramirez", "image": "/assets/images/dr-remirez.png"},
    {"name": "Jasmine Lee", "image": "/assets/images/dr-lee.png"},
    {"name": "Alyana Cruz", "image": "/assets/images/dr-cruz.png"},
    {"name": "Hardik Sharma", "image": "/assets/images/dr-sharma.png"},
]

# Wire (camelCase) names, as the form submits them
PATIENT_FORM_DEFAULT_VALUES = {
    "name": "",
    "email": "",
    "phone": "",
    "birthDate": "",
    "gender": "male",
    "address": "",
    "occupation": "",
    "emergencyContactName": "",
    "emergencyContactNumber": "",
    "primaryPhysician": "",
    "insuranceProvider": "",
    "insurancePolicyNumber": "",
    "allergies": "",
    "medications": "",
    "familyMedicalHistory": "",
    "pastMedicalHistory": "",
    "identificationType": "Birth Certificate",
    "identificationNumber": "",
    "treatmentConsent": False,
    "disclosureConsent": False,
    "privacyConsent": False,
}

# Identity scans are wrapped as PNG blobs before upload
DEFAULT_UPLOAD_MIME_TYPE = "image/png"

NEW_APPOINTMENT_PATH = "/patients/{user_id}/new-appointment"
REGISTER_PATH = "/patients/{user_id}/register"
