import django.contrib.auth.models
import django.contrib.auth.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('username', models.CharField(error_messages={'unique': 'A user with that username already exists.'}, help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.', max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('email', models.EmailField(blank=True, max_length=254, verbose_name='email address')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('role', models.CharField(choices=[('admin', 'Administrator'), ('opd-ipd', 'OPD/IPD desk'), ('staff', 'Clinical staff')], default='staff', max_length=10)),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'abstract': False,
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='SequenceCounter',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=64, unique=True)),
                ('value', models.PositiveBigIntegerField(default=0)),
                ('last_updated', models.DateTimeField(auto_now=True)),
            ],
        ),
        migrations.CreateModel(
            name='Patient',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('uhid', models.CharField(max_length=32, unique=True)),
                ('name', models.CharField(db_index=True, max_length=255)),
                ('number', models.CharField(blank=True, db_index=True, max_length=20)),
                ('age', models.PositiveIntegerField(blank=True, null=True)),
                ('age_unit', models.CharField(choices=[('year', 'Years'), ('month', 'Months'), ('day', 'Days')], default='year', max_length=8)),
                ('dob', models.DateField(blank=True, null=True)),
                ('gender', models.CharField(blank=True, max_length=16)),
                ('address', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
        ),
        migrations.CreateModel(
            name='Doctor',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('dr_name', models.CharField(max_length=255)),
                ('department', models.CharField(choices=[('opd', 'OPD'), ('ipd', 'IPD'), ('both', 'Both')], db_index=True, default='opd', max_length=8)),
                ('specialist', models.JSONField(blank=True, default=list)),
                ('charges', models.JSONField(blank=True, default=list)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
        ),
        migrations.CreateModel(
            name='MasterService',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('service_name', models.CharField(max_length=255)),
                ('amount', models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
        ),
        migrations.CreateModel(
            name='OPDSummary',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField(unique=True)),
                ('total_count', models.PositiveIntegerField(default=0)),
                ('total_revenue', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('cash_revenue', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('online_revenue', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('total_discount', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
        ),
        migrations.CreateModel(
            name='Bed',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('room_type', models.CharField(db_index=True, max_length=64)),
                ('bed_number', models.CharField(max_length=32)),
                ('bed_type', models.CharField(blank=True, max_length=64)),
                ('status', models.CharField(choices=[('available', 'Available'), ('occupied', 'Occupied')], db_index=True, default='available', max_length=12)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'unique_together': {('room_type', 'bed_number')},
            },
        ),
        migrations.CreateModel(
            name='Signature',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('owner_name', models.CharField(max_length=150)),
                ('pin', models.CharField(max_length=10, unique=True)),
                ('signature_url', models.URLField(max_length=500)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
        ),
        migrations.CreateModel(
            name='OPDRegistration',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('uhid', models.CharField(db_index=True, max_length=32)),
                ('bill_no', models.PositiveIntegerField(unique=True)),
                ('date', models.DateField(db_index=True)),
                ('refer_by', models.CharField(blank=True, max_length=255)),
                ('additional_notes', models.TextField(blank=True)),
                ('service_info', models.JSONField(blank=True, default=list)),
                ('payment_info', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('entered_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='opd_entries', to=settings.AUTH_USER_MODEL)),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='opd_registrations', to='clinic.patient')),
            ],
        ),
        migrations.CreateModel(
            name='OPDOnCall',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('uhid', models.CharField(db_index=True, max_length=32)),
                ('date', models.DateField()),
                ('time', models.TimeField()),
                ('referred_by', models.CharField(blank=True, max_length=255)),
                ('additional_notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('entered_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='oncall_entries', to=settings.AUTH_USER_MODEL)),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='oncall_entries', to='clinic.patient')),
            ],
        ),
        migrations.CreateModel(
            name='OPDPrescription',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('uhid', models.CharField(max_length=32)),
                ('symptoms', models.TextField(blank=True)),
                ('medicines', models.JSONField(blank=True, default=list)),
                ('overall_instruction', models.TextField(blank=True)),
                ('created_by', models.CharField(blank=True, max_length=150)),
                ('updated_by', models.CharField(blank=True, max_length=150)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('opd', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='prescription', to='clinic.opdregistration')),
            ],
        ),
        migrations.CreateModel(
            name='IPDRegistration',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('uhid', models.CharField(db_index=True, max_length=32)),
                ('admission_source', models.CharField(blank=True, max_length=64)),
                ('admission_type', models.CharField(blank=True, max_length=64)),
                ('under_care_of_doctor', models.CharField(blank=True, max_length=255)),
                ('payment_detail', models.JSONField(blank=True, default=list)),
                ('service_detail', models.JSONField(blank=True, default=list)),
                ('relative_name', models.CharField(blank=True, max_length=255)),
                ('relative_ph_no', models.CharField(blank=True, max_length=20)),
                ('relative_address', models.TextField(blank=True)),
                ('admission_date', models.DateField(blank=True, null=True)),
                ('admission_time', models.TimeField(blank=True, null=True)),
                ('mrd', models.CharField(blank=True, max_length=64)),
                ('tpa', models.BooleanField(default=False)),
                ('discharge_date', models.DateTimeField(blank=True, db_index=True, null=True)),
                ('ipd_notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('bed', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='admissions', to='clinic.bed')),
                ('entered_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='ipd_entries', to=settings.AUTH_USER_MODEL)),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='ipd_registrations', to='clinic.patient')),
            ],
        ),
        migrations.CreateModel(
            name='DischargeSummary',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('uhid', models.CharField(max_length=32)),
                ('final_diagnosis', models.TextField(blank=True)),
                ('procedures', models.TextField(blank=True)),
                ('provisional_diagnosis', models.TextField(blank=True)),
                ('history_of_present_illness', models.TextField(blank=True)),
                ('investigations', models.TextField(blank=True)),
                ('treatment_given', models.TextField(blank=True)),
                ('hospital_course', models.TextField(blank=True)),
                ('surgery_procedure_details', models.TextField(blank=True)),
                ('condition_at_discharge', models.TextField(blank=True)),
                ('discharge_medication', models.TextField(blank=True)),
                ('follow_up', models.TextField(blank=True)),
                ('discharge_instructions', models.TextField(blank=True)),
                ('discharge_type', models.CharField(blank=True, choices=[('Discharge', 'Discharge'), ('Discharge Partially', 'Discharge Partially'), ('Death', 'Death')], max_length=32)),
                ('last_updated', models.DateTimeField(auto_now=True)),
                ('ipd', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='discharge_summary', to='clinic.ipdregistration')),
            ],
        ),
        migrations.CreateModel(
            name='OTDetail',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('uhid', models.CharField(max_length=32)),
                ('ot_type', models.CharField(choices=[('major', 'Major'), ('minor', 'Minor')], max_length=8)),
                ('ot_notes', models.TextField(blank=True)),
                ('ot_date', models.DateField(db_index=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('ipd', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='ot_detail', to='clinic.ipdregistration')),
            ],
        ),
        migrations.CreateModel(
            name='ClinicalSheet',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(choices=[('admission_assessment', 'Admission assessment'), ('blood_transfusion_consent', 'Blood transfusion consent'), ('blood_transfusion', 'Blood transfusion record'), ('clinical_notes', 'Clinical notes'), ('discharge_ama', 'Discharge against medical advice'), ('discharge_summary', 'Discharge summary sheet'), ('doctor_visit', 'Doctor visits'), ('drug_chart', 'Drug chart'), ('emergency_care', 'Emergency care'), ('glucose', 'Glucose monitoring'), ('investigation', 'Investigation sheet'), ('iv_infusion', 'IV infusion'), ('nurses_notes', 'Nurses notes'), ('patient_charges', 'Patient charges'), ('patient_file', 'Patient file'), ('progress_notes', 'Progress notes'), ('surgical_consent', 'Surgical consent'), ('vitals', 'Vital observations'), ('writing_pad', 'Writing pad')], max_length=40)),
                ('data', models.JSONField(blank=True, default=dict)),
                ('header', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('ipd', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='sheets', to='clinic.ipdregistration')),
                ('updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='sheet_updates', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'unique_together': {('ipd', 'kind')},
            },
        ),
        migrations.CreateModel(
            name='AuditEvent',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(max_length=64)),
                ('object_type', models.CharField(blank=True, max_length=64, null=True)),
                ('object_id', models.CharField(blank=True, max_length=64, null=True)),
                ('detail', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'indexes': [
                    models.Index(fields=['action', 'created_at'], name='audit_action_created_idx'),
                    models.Index(fields=['object_type', 'object_id', 'created_at'], name='audit_object_created_idx'),
                ],
            },
        ),
    ]
