# accounting/api/views/templates.py

"""
JOURNAL TEMPLATES API

GET  /templates/                     list (filter: trigger_type, is_active)
GET  /templates/<code>/              detail with ordered lines
GET  /templates/<code>/validate/     {valid, errors, warnings}
POST /templates/<code>/apply/        apply to ad-hoc source document figures
"""

from dataclasses import asdict

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.viewsets import ReadOnlyModelViewSet

from accounting.api.serializers.journal_entries import JournalEntrySerializer
from accounting.api.serializers.templates import (
    ApplyTemplateSerializer,
    JournalEntryTemplateSerializer,
)
from accounting.models.journal import JournalEntry
from accounting.models.template import JournalEntryTemplate
from accounting.services.amount_rules import SourceDocument
from accounting.services.template_engine import apply_template, validate_template


@extend_schema(tags=["accounting"])
class JournalEntryTemplateViewSet(ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = JournalEntryTemplateSerializer
    filterset_fields = ("trigger_type", "is_active")
    lookup_field = "code"
    pagination_class = None

    queryset = JournalEntryTemplate.objects.prefetch_related("lines__account").order_by("code")

    @extend_schema(responses={200: dict})
    @action(detail=True, methods=["get"])
    def validate(self, request, code=None):
        template = self.get_object()
        return Response(asdict(validate_template(template.code)))

    @extend_schema(request=ApplyTemplateSerializer, responses=JournalEntrySerializer)
    @action(detail=True, methods=["post"])
    def apply(self, request, code=None):
        template = self.get_object()
        ser = ApplyTemplateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        source = SourceDocument(
            id=data["document_id"],
            trigger_type=template.trigger_type,
            date=data["date"],
            description=data["description"],
            total=data["total"],
            subtotal=data["subtotal"],
            tax=data["tax"],
            tax_rate_a=data["tax_rate_a"],
            tax_rate_b=data["tax_rate_b"],
            perceptions=tuple(data["perceptions"]),
            retention=data["retention"],
            net_payment=data["net_payment"],
            principal=data["principal"],
            interest=data["interest"],
            custom_fields=data["custom_fields"],
        )
        applied = apply_template(
            template.code,
            source,
            user=request.user,
            auto_post=data["auto_post"],
        )
        entry = JournalEntry.objects.prefetch_related("lines__account").get(pk=applied.entry.pk)
        return Response(JournalEntrySerializer(entry).data, status=status.HTTP_201_CREATED)
