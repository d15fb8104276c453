"""Contact form submissions and the staff inbox that triages them."""

import logging
import re

from django.http import JsonResponse

from fleet.models import ContactMessage
from fleet.serializers import contact_to_dict

from .base import ApiStaffRequiredMixin, ApiView, message

logger = logging.getLogger(__name__)

EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
REQUIRED_FIELDS = ("first_name", "last_name", "email", "subject", "message")


class ContactCollectionView(ApiStaffRequiredMixin, ApiView):
    """Anyone may write in; only staff read the inbox."""

    public_methods = ("post",)

    def get(self, request):
        contacts = ContactMessage.objects.all()
        status = request.GET.get("status")
        if status:
            contacts = contacts.filter(status=status)
        return JsonResponse([contact_to_dict(c) for c in contacts], safe=False)

    def post(self, request):
        data = self.payload()
        fields = {name: str(data.get(name) or "").strip() for name in REQUIRED_FIELDS}
        if not all(fields.values()):
            return message("Missing required fields", 400)
        if not re.match(EMAIL_PATTERN, fields["email"]):
            return message("Please enter a valid email", 400)

        contact = ContactMessage.objects.create(
            phone=str(data.get("phone") or "").strip(),
            agree_to_marketing=bool(data.get("agree_to_marketing")),
            **fields,
        )
        logger.info(f"Contact message {contact.pk} received from {contact.email}")
        return JsonResponse({"message": "Message received", "id": contact.id}, status=201)


class ContactDetailView(ApiStaffRequiredMixin, ApiView):
    def get_object(self, pk):
        return ContactMessage.objects.filter(pk=pk).first()

    def get(self, request, pk):
        contact = self.get_object(pk)
        if contact is None:
            return message("Not found", 404)
        return JsonResponse(contact_to_dict(contact))

    def put(self, request, pk):
        contact = self.get_object(pk)
        if contact is None:
            return message("Not found", 404)

        data = self.payload()
        if "status" in data:
            status = data["status"]
            # Unknown states fall back to the start of the workflow
            if status not in ContactMessage.Status.values:
                status = ContactMessage.Status.NEW
            contact.status = status
        for name in ("phone", "subject", "message"):
            if data.get(name):
                setattr(contact, name, str(data[name]).strip())
        contact.save()
        return JsonResponse({"message": "Updated", "contact": contact_to_dict(contact)})

    def delete(self, request, pk):
        contact = self.get_object(pk)
        if contact is None:
            return message("Not found", 404)
        contact.delete()
        return message("Deleted", 200)
