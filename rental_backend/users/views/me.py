# users/views/me.py

from drf_spectacular.utils import extend_schema
from rest_framework import serializers
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

# ---------------------------
# SERIALIZER
# ---------------------------


class MeSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    email = serializers.EmailField()
    first_name = serializers.CharField()
    last_name = serializers.CharField()
    role = serializers.CharField()
    unit_ids = serializers.ListField(child=serializers.UUIDField())
    has_tenant_profile = serializers.BooleanField()


# ---------------------------
# VIEW
# ---------------------------


class MeView(APIView):
    """
    Who-am-I for the billing screens: role plus the units the caller
    can pay invoices for.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = MeSerializer

    @extend_schema(
        responses={200: MeSerializer},
        description="Get current authenticated user profile and billing context",
    )
    def get(self, request):
        user = request.user

        unit_ids = list(user.units.values_list("id", flat=True))
        has_profile = hasattr(user, "tenant_profile")

        return Response(
            {
                "id": user.id,
                "email": user.email,
                "first_name": user.first_name,
                "last_name": user.last_name,
                "role": user.role,
                "unit_ids": unit_ids,
                "has_tenant_profile": has_profile,
            }
        )
