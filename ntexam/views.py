from django.http import JsonResponse


def error_404_view(request, exception):
    # API clients get JSON instead of Django's HTML 404 page
    return JsonResponse({"ok": False, "error": "not_found"}, status=404)


def error_500_view(request):
    return JsonResponse({"ok": False, "error": "unexpected_error"}, status=500)
