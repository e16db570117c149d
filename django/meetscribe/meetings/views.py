import logging

from django.conf import settings
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from config.exceptions import error_response
from .models import Meeting
from .pagination import InvalidCursor
from .serializers import MeetingListQuerySerializer, MeetingSerializer
from .services import StorageError, get_meeting, list_meetings

logger = logging.getLogger(__name__)


class MeetingListView(APIView):
    def get(self, request):
        params = {key: value for key, value in request.query_params.items() if value != ""}
        s = MeetingListQuerySerializer(data=params)
        s.is_valid(raise_exception=True)

        try:
            page = list_meetings(
                request.user,
                cursor=s.validated_data.get("cursor"),
                last_id=s.validated_data.get("lastId"),
                page_size=s.validated_data.get("pageSize", settings.MEETINGS_PAGE_SIZE),
            )
        except InvalidCursor as exc:
            return error_response(str(exc), status.HTTP_400_BAD_REQUEST)
        except StorageError as exc:
            return error_response(str(exc), exc.status_code, exc)

        return Response({
            "summaries": MeetingSerializer(page.items, many=True, context={"request": request}).data,
            "hasMore": page.has_more,
            "nextCursor": page.next_cursor,
        })


class MeetingDetailView(APIView):
    def get(self, request, meeting_id):
        try:
            meeting = get_meeting(request.user, meeting_id)
        except Meeting.DoesNotExist:
            return error_response("Summary not found", status.HTTP_404_NOT_FOUND)
        return Response(MeetingSerializer(meeting, context={"request": request}).data)
