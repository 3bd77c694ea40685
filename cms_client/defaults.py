"""
Static copy shown by the reserve-basement drawer when the database has nothing.
"""

from __future__ import annotations

from cms_client.models import ContactDetail, PolicyItem

DEFAULT_DRAWER_TITLE = "Fort Dodge Islamic Center Basement Reservation Form"
DEFAULT_DRAWER_DESCRIPTION = (
    "Provide your event details to request basement usage for classes, "
    "gatherings, or community events."
)

DEFAULT_INTRO_COPY = (
    "This form is intended for members and affiliates of Fort Dodge Islamic Center "
    "seeking to reserve the basement space for various activities and events. Our "
    "basement is a versatile space, ideal for gatherings, educational sessions, "
    "community events, and more. Please fill out this form to begin the reservation "
    "process. All requests are subject to review based on our policy guidelines and "
    "availability.",
    "Note: Please allow at least 2 days for us to process your request. We do not "
    "guarantee same-day reservations, so plan in advance.",
)

DEFAULT_CONTACT_DETAILS = (
    ContactDetail(label="Phone", value="(515) 528-3618", href="tel:15155283618"),
    ContactDetail(label="Email", value="info@arqum.org", href="mailto:info@arqum.org"),
)

DEFAULT_POLICY_TITLE = "Basement Usage Policy"

DEFAULT_POLICY_ITEMS = (
    PolicyItem(
        title="1. Safety First:",
        description=(
            "The safety of our community is our top priority. The basement contains "
            "electrical components and utility rooms, which can be hazardous, "
            "especially to children. It is imperative that these areas are treated "
            "with caution."
        ),
    ),
    PolicyItem(
        title="2. Adult Supervision Required for Children:",
        description=(
            "Children are welcome to participate in activities held in the basement; "
            "however, they must be under adult supervision at all times. Unscheduled, "
            "unsupervised access by children to the basement is strictly prohibited to "
            "prevent accidents."
        ),
    ),
    PolicyItem(
        title="3. Prioritizing Space for Community Activities:",
        description=(
            "While we understand the need for recreational space for children, the "
            "primary purpose of the basement is to serve as an additional space for "
            "community activities, educational purposes, and events. Therefore, "
            "reservation requests will be prioritized based on these needs."
        ),
    ),
    PolicyItem(
        title="4. Respect for the Space:",
        description=(
            "All users of the basement are expected to respect the space. This "
            "includes maintaining cleanliness, ensuring all equipment and facilities "
            "are used appropriately, and leaving the space in the same condition as it "
            "was found."
        ),
    ),
    PolicyItem(
        title="5. Compliance with Islamic Center Rules and Regulations:",
        description=(
            "All activities in the basement must adhere to the overall rules and "
            "guidelines of the Fort Dodge Islamic Center. Any activities contrary to "
            "these guidelines will not be permitted."
        ),
    ),
    PolicyItem(
        title="6. Reservation Review and Confirmation:",
        description=(
            "Submission of this form does not guarantee a reservation. All requests "
            "will be reviewed. We will contact you via email communications as soon as "
            "possible to confirm availability. Please wait for our confirmation before "
            "proceeding with arrangements."
        ),
    ),
    PolicyItem(
        title="7. Cleaning:",
        description=(
            "The reservation holder will be responsible to clean and remove trash from "
            "the basement after the reservation ends. They will also vacuum and return "
            "everything as it was before the reservation."
        ),
    ),
    PolicyItem(
        title="8. Community Use:",
        description=(
            "The basement is intended for community use and a safe, respectful, and "
            "beneficial use of the basement space for our community."
        ),
    ),
)

DEFAULT_RESERVATION_FORM_URL = "https://forms.gle/ReserveBasementForm"
