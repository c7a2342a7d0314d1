from django.contrib import admin
from .models import Course, CourseEnrollment, Exam, ExamQuestion, ExamSubmission


class ExamQuestionInline(admin.TabularInline):
    model = ExamQuestion
    extra = 0


@admin.register(Exam)
class ExamAdmin(admin.ModelAdmin):
    list_display = ['id', 'title', 'course', 'author_role', 'audience', 'scheduled_date', 'is_published']
    list_filter = ['author_role', 'audience', 'is_published', 'exam_type', 'exam_mode']
    search_fields = ['title']
    inlines = [ExamQuestionInline]


@admin.register(ExamSubmission)
class ExamSubmissionAdmin(admin.ModelAdmin):
    list_display = ['id', 'exam', 'student_id', 'attempt_number', 'status', 'score', 'passed']
    list_filter = ['status', 'passed']


@admin.register(Course)
class CourseAdmin(admin.ModelAdmin):
    list_display = ['id', 'title', 'instructor_name', 'instructor_role']


@admin.register(CourseEnrollment)
class CourseEnrollmentAdmin(admin.ModelAdmin):
    list_display = ['id', 'course', 'student_id', 'status']
    list_filter = ['status']
