# accounting/api/views/journal_entries.py

"""
JOURNAL ENTRIES API

Entries are never edited through the API. The only state changes are:
- POST /journal-entries/<id>/post/      DRAFT -> POSTED
- POST /journal-entries/<id>/reverse/   offsetting posted entry
"""

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.viewsets import ReadOnlyModelViewSet

from accounting.api.serializers.journal_entries import (
    JournalEntrySerializer,
    ReverseEntrySerializer,
)
from accounting.models.journal import JournalEntry
from accounting.services.journal_entry_service import post_entry, reverse_entry


@extend_schema(tags=["accounting"])
class JournalEntryViewSet(ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated]
    serializer_class = JournalEntrySerializer
    filterset_fields = ("status", "trigger_type", "template_code", "origin_type", "origin_id", "date")

    queryset = (
        JournalEntry.objects.select_related("reverses")
        .prefetch_related("lines__account")
        .order_by("-entry_number")
    )

    @extend_schema(request=None, responses=JournalEntrySerializer)
    @action(detail=True, methods=["post"], url_path="post")
    def post_draft(self, request, pk=None):
        entry = post_entry(self.get_object().pk)
        entry = self.get_queryset().get(pk=entry.pk)
        return Response(JournalEntrySerializer(entry).data)

    @extend_schema(request=ReverseEntrySerializer, responses=JournalEntrySerializer)
    @action(detail=True, methods=["post"])
    def reverse(self, request, pk=None):
        ser = ReverseEntrySerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        applied = reverse_entry(
            self.get_object().pk,
            description=ser.validated_data["description"],
            date=ser.validated_data["date"],
            user=request.user,
        )
        entry = self.get_queryset().get(pk=applied.entry.pk)
        return Response(JournalEntrySerializer(entry).data, status=status.HTTP_201_CREATED)
